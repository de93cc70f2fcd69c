from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("beep-train-task")
except PackageNotFoundError:
    __version__ = "unknown"
