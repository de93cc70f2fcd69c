"""
Entry point: `python -m beeptrain` or `beep-train-task` script.
Wires all modules together.
"""
from __future__ import annotations


def run() -> None:
    # Disable pyglet event checking inside core.wait; KeyboardInput pumps events itself
    from psychopy import core
    core.checkPygletDuringWait = False

    from datetime import datetime
    from pathlib import Path

    from psychopy import event as psy_event, logging
    from rich.console import Console
    from rich.live import Live
    from rich.table import Table
    import rich.box

    from beeptrain import audio, classifier, config, display, inputs, recorder, scheduler, session, staircase

    # ── INITIALISE SESSION ───────────────────────────────────────────────────
    session_info = session.show_dialog()
    session_time = datetime.now()
    win = session.setup_window()

    # ── LOGGING ──────────────────────────────────────────────────────────────
    data_dir = Path("data")
    run_dir = session.make_run_dir(data_dir, session_info, session_time)
    logging.LogFile(str(run_dir / "experiment.log"), level=logging.EXP)
    logging.console.setLevel(logging.WARNING)  # rich handles terminal output

    rcon = Console(stderr=True)
    rcon.print(
        f"[bold]Session:[/bold] subject=[cyan]{session_info.subject_id}[/cyan]  "
        f"design=[cyan]{session_info.design}[/cyan]  emulate_audio=[cyan]{session_info.emulate_audio}[/cyan]"
    )
    logging.exp(
        f"Session: subject={session_info.subject_id}  design={session_info.design}  "
        f"emulate_audio={session_info.emulate_audio}"
    )

    # ── STIMULUS & DESIGN ────────────────────────────────────────────────────
    stim = config.StimulusConfig()
    design = session.load_design(session_info.design)
    n_trials = len(design)
    response_map = classifier.assign_response_map()
    mapping_label = config.RESPONSE_MAPS[response_map]

    rcon.print(
        f"[bold]Tone:[/bold] {stim.base_frequency_hz:.0f} Hz  {stim.beep_duration_ms:.0f} ms  "
        f"ISI=[cyan]{stim.base_isi_ms:.0f} ms[/cyan]  "
        f"delta=[cyan]{stim.initial_delta_ms:.0f} ms[/cyan] "
        f"([cyan]{stim.min_delta_ms:.0f}[/cyan]–[cyan]{stim.max_delta_ms:.0f}[/cyan])"
    )
    rcon.print(f"[bold yellow]Response mapping:[/bold yellow] {mapping_label}")

    # ── COMPONENTS ───────────────────────────────────────────────────────────
    audio_out = audio.make_output(session_info.emulate_audio, stim.sample_rate)
    beeps = scheduler.BeepScheduler(stim, audio_out)
    stairs = staircase.StaircaseController.from_config(stim)

    file_stem = f"{session_info.subject_id}_{session_info.design}"
    event_writer = recorder.EventCsvWriter(
        run_dir / f"events_{file_stem}.csv", subject_id=session_info.subject_id
    )
    responses = classifier.ResponseClassifier(
        beeps, stairs, event_writer, response_map, feedback=display.TextFeedback(win)
    )
    recorder.write_manifest(
        run_dir=run_dir,
        session_info=session_info,
        session_time=session_time,
        stim=stim,
        response_mapping=mapping_label,
        n_trials=n_trials,
    )
    kb = inputs.KeyboardInput(win)
    keys_map = config.KEYS_SESSION

    # ── TRIAL LOOP ───────────────────────────────────────────────────────────
    table = Table(box=rich.box.SIMPLE_HEAD)
    table.add_column("#", justify="right")
    table.add_column("Condition")
    table.add_column("Changes", justify="right")
    table.add_column("Hits", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Miss", justify="right")
    table.add_column("FA", justify="right")
    table.add_column("Delta", justify="right")

    # auto_refresh=False prevents a background timer thread during trials
    with Live(table, console=rcon, auto_refresh=False) as live:
        for trial_idx, row in design.iterrows():
            trial_n = int(trial_idx) + 1
            block_type = int(row["block_type"])
            label = classifier.condition_label(block_type) or "stationary"

            pressed = psy_event.waitKeys(keyList=[keys_map["start"], keys_map["end"]])
            if pressed and pressed[0] == keys_map["end"]:
                logging.exp(f"Session ended by experimenter before trial {trial_n}")
                break

            phase_name = "practice" if trial_idx < config.N_PRACTICE_TRIALS else "staircase"
            logging.exp(f"Starting trial {trial_n}/{n_trials}  block_type={block_type} ({label}, {phase_name})")

            responses.begin_trial(int(trial_idx), block_type)
            event_writer.set_trial(
                trial_n=trial_n,
                block_id=int(row["block_id"]),
                trial_id=int(row["trial_id"]),
                block_type=block_type,
            )

            trial_clock = core.Clock()
            beeps.play_standard_sequence()
            beeps.run_beep_train(
                session_info.trial_duration_s,
                scheduler.TrialCollaborators(input_source=kb, clock=trial_clock, responses=responses),
            )
            beeps.stop_beep_train()

            tally = responses.tally
            state = beeps.current_state()
            table.add_row(
                f"{trial_n}/{n_trials}",
                label,
                str(state.change_count),
                str(tally.hits),
                str(tally.correct),
                str(tally.misses),
                str(tally.false_alarms),
                f"{state.current_delta_ms:.1f} ms",
            )
            live.refresh()
            logging.exp(
                f"Trial {trial_n:3d}/{n_trials}  {label:<10}  changes={state.change_count}  "
                f"hits={tally.hits}  correct={tally.correct}  miss={tally.misses}  "
                f"fa={tally.false_alarms}  delta={state.current_delta_ms:.1f} ms"
            )

    for label in stairs.labels:
        threshold = stairs.threshold(label)
        thr_str = f"{threshold:.1f} ms" if threshold is not None else "—"
        rcon.print(
            f"[bold]Staircase {label}:[/bold] reversals={stairs.n_reversals(label)}  "
            f"threshold≈[cyan]{thr_str}[/cyan]"
        )
        logging.exp(f"Staircase {label}: reversals={stairs.n_reversals(label)}  threshold={thr_str}")

    # ── CLEANUP ──────────────────────────────────────────────────────────────
    event_writer.close()
    logging.flush()
    win.close()
    core.quit()


if __name__ == "__main__":
    run()
