"""
Session initialisation: dialog, window setup, output directory and trial design loading.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd
from psychopy import core, gui, visual

from beeptrain import config

# Resolve project root as two levels above src/beeptrain/
_PACKAGE_DIR = Path(__file__).parent          # src/beeptrain/
_PROJECT_ROOT = _PACKAGE_DIR.parent.parent    # project root
_SEQUENCES_DIR = _PROJECT_ROOT / "sequences"

DESIGN_COLUMNS: set[str] = {"block_id", "trial_id", "block_type"}


@dataclass
class SessionInfo:
    subject_id: str
    design: str                # sequences/<design>.csv
    emulate_audio: bool
    trial_duration_s: float


def _yes(value: str) -> bool:
    return str(value).strip().lower() == "yes"


def parse_dialog_fields(fields: dict[str, str]) -> SessionInfo:
    dur_key = f"Trial duration (s) [default {config.TRIAL_DURATION_S}]"
    try:
        trial_duration_s = float(fields[dur_key])
    except ValueError:
        trial_duration_s = config.TRIAL_DURATION_S

    return SessionInfo(
        subject_id=str(fields["Subject ID"]).strip(),
        design=str(fields["Design (sequences/<name>.csv)"]).strip(),
        emulate_audio=_yes(fields["Emulate audio? (yes/no)"]),
        trial_duration_s=trial_duration_s,
    )


def show_dialog() -> SessionInfo:
    """Present the startup dialog and return a SessionInfo."""
    fields = {
        "Subject ID": "XXX000",
        "Design (sequences/<name>.csv)": "session",
        "Emulate audio? (yes/no)": "no",
        f"Trial duration (s) [default {config.TRIAL_DURATION_S}]": str(config.TRIAL_DURATION_S),
    }
    dlg = gui.DlgFromDict(dictionary=fields, title="Beep Train Task")
    if not dlg.OK:
        core.quit()
    return parse_dialog_fields(fields)


def setup_window() -> visual.Window:
    """Create the window that receives the response-key events."""
    return visual.Window(
        size=(800, 600),
        fullscr=False,
        allowGUI=True,
        units="height",
        color=(0.2, 0.2, 0.2),
    )


def make_run_dir(data_dir: Path, session_info: SessionInfo, session_time: datetime) -> Path:
    """Create and return data/{subject_id}_{design}_{YYYYMMDDTHHMMSS}/."""
    ts = session_time.strftime("%Y%m%dT%H%M%S")
    run_dir = data_dir / f"{session_info.subject_id}_{session_info.design}_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def load_design(design: str, sequences_dir: Path | None = None) -> pd.DataFrame:
    """Read sequences/{design}.csv and return a DataFrame, one row per trial."""
    path = (sequences_dir or _SEQUENCES_DIR) / f"{design}.csv"
    if not path.exists():
        raise FileNotFoundError(f"Design file not found: {path}")
    df = pd.read_csv(path)
    if not DESIGN_COLUMNS.issubset(df.columns):
        raise ValueError(f"Design file must have columns {DESIGN_COLUMNS}; got {set(df.columns)}")
    for col in DESIGN_COLUMNS:
        df[col] = df[col].astype(int)
    unknown = set(df["block_type"]) - set(config.CONDITION_LABELS) - {config.STATIONARY_BLOCK_TYPE}
    if unknown:
        raise ValueError(f"Unknown block_type values in {path.name}: {sorted(unknown)}")
    return df.reset_index(drop=True)
