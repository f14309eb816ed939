"""FlickShot CLI.

Usage:
    flickshot serve     — Start the WebSocket game server
    flickshot play      — Play a headless session on the local camera
    flickshot record    — Record hand landmarks from the camera
    flickshot replay    — Run a recorded session through the game
    flickshot config    — Write the default configuration as YAML
"""

from __future__ import annotations

import logging
import random
import time
from pathlib import Path
from typing import Optional

try:
    import typer
except ImportError:
    raise ImportError("typer is required for CLI. Install with: pip install typer")

from flickshot.config import GameConfig
from flickshot.game import GameEvent, GamePhase, GameSnapshot, Intent

app = typer.Typer(
    name="flickshot",
    help="🔫 Finger-gun target shooting driven by hand tracking.",
    add_completion=False,
)


def _setup(config_path: Optional[str], log_level: str) -> GameConfig:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    if config_path is None:
        return GameConfig()
    path = Path(config_path)
    if not path.exists():
        typer.echo(f"❌ Config not found: {config_path}", err=True)
        raise typer.Exit(1)
    try:
        return GameConfig.from_yaml(path)
    except ValueError as e:
        typer.echo(f"❌ Invalid config: {e}", err=True)
        raise typer.Exit(1)


def _echo_event(event: GameEvent):
    d = event.data
    if event.type == "phase":
        typer.echo(f"   ▶ {d['previous']} → {d['phase']}")
    elif event.type == "hit":
        typer.echo(f"   🎯 hit target {d['target_id']}  score={d['score']}  hits={d['targets_hit']}")
    elif event.type == "miss":
        typer.echo(f"   💨 miss  score={d['score']}")
    elif event.type == "bonus":
        typer.echo(f"   ⏱  bonus +{d['bonus_ms'] // 1000}s")
    elif event.type == "error":
        typer.echo(f"   ❌ {d['message']}", err=True)


def _echo_summary(snapshot: GameSnapshot, required: int):
    typer.echo("\n📊 Results:")
    typer.echo(f"   Score:        {snapshot.score}")
    typer.echo(f"   Targets hit:  {snapshot.targets_hit} (required {required})")
    typer.echo(f"   Shots fired:  {snapshot.shots_fired}")
    verdict = "✅ PASSED" if snapshot.challenge_passed else "❌ FAILED"
    typer.echo(f"   Challenge:    {verdict}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8765, help="Port"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    log_level: str = typer.Option("info", help="Log level"),
):
    """Start the WebSocket game server."""
    import uvicorn
    from flickshot.server import app as fastapi_app, state

    state.config = _setup(config, log_level)
    typer.echo(f"🚀 Starting FlickShot server on {host}:{port}")
    uvicorn.run(fastapi_app, host=host, port=port, log_level=log_level)


@app.command()
def play(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    seed: Optional[int] = typer.Option(None, help="Seed for target placement"),
    mute: bool = typer.Option(False, help="Start muted"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Play one session on the local camera, printing hits and misses."""
    from flickshot.runtime import GameRuntime

    cfg = _setup(config, log_level)
    runtime = GameRuntime(cfg, rng=random.Random(seed))
    runtime.on_event(_echo_event)

    with runtime:
        now = time.monotonic() * 1000.0
        if mute:
            runtime.dispatch(Intent.TOGGLE_MUTE, now)
        runtime.dispatch(Intent.START, now)
        runtime.step(now)
        if runtime.phase is not GamePhase.READY:
            raise typer.Exit(1)

        typer.echo("🔫 Make a finger gun and flick your thumb to shoot. Ctrl+C to quit.")
        runtime.dispatch(Intent.BEGIN, time.monotonic() * 1000.0)
        try:
            runtime.run(should_stop=lambda: runtime.phase is not GamePhase.PLAYING)
        except KeyboardInterrupt:
            typer.echo("\n⏹  Stopped")

        _echo_summary(runtime.snapshot, cfg.min_hits_required)


@app.command()
def record(
    output: str = typer.Option("recording.json", "-o", help="Output file (.json or .npz)"),
    duration: float = typer.Option(10.0, help="Recording duration in seconds"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Record hand landmarks from the camera for later replay."""
    from flickshot.camera import TrackingSession
    from flickshot.errors import TrackingError
    from flickshot.recorder import LandmarkRecorder

    cfg = _setup(config, log_level)
    recorder = LandmarkRecorder()

    with TrackingSession(cfg) as tracking:
        try:
            tracking.acquire()
        except TrackingError as e:
            typer.echo(f"❌ {e}", err=True)
            raise typer.Exit(1)

        typer.echo(f"🎥 Recording for {duration:.0f}s... Ctrl+C to stop early")
        start = time.monotonic()
        recorder.start(start * 1000.0)
        try:
            while time.monotonic() - start < duration:
                frame, hands = tracking.poll()
                if frame is None:
                    continue
                recorder.add_frame(hands, frame.timestamp_ms)
                if recorder.frame_count % 30 == 0:
                    typer.echo(f"\r   Frames: {recorder.frame_count} | Hand: {'yes' if hands else 'no '}", nl=False)
        except KeyboardInterrupt:
            pass
        recorder.stop()

    recorder.save(output)
    typer.echo(f"\n💾 Saved {recorder.frame_count} frames ({recorder.duration_ms / 1000:.1f}s) to {output}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    seed: int = typer.Option(0, help="Seed for target placement"),
    finish: bool = typer.Option(False, help="Keep the clock running until the session ends"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recording through the aim pipeline and a game session."""
    from flickshot.audio import LoggingAudio
    from flickshot.camera import TrackingSession
    from flickshot.recorder import ReplaySource
    from flickshot.runtime import GameRuntime

    cfg = _setup(config, log_level)
    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    source = ReplaySource.load(path)
    typer.echo(f"▶️  Replaying {path.name} ({source.frame_count} frames, {source.duration_ms / 1000:.1f}s)")

    tracking = TrackingSession(cfg, source_factory=lambda: source, detector_factory=lambda: source)
    runtime = GameRuntime(cfg, tracking=tracking, audio=LoggingAudio(), rng=random.Random(seed))
    runtime.on_event(_echo_event)

    with runtime:
        timestamps = list(source.timestamps())
        now = timestamps[0] if timestamps else 0.0
        runtime.dispatch(Intent.START, now)
        runtime.step(now)
        # The permission step reads a frame, play the recording from its start
        source.rewind()
        runtime.dispatch(Intent.BEGIN, now)

        for ts in timestamps:
            runtime.step(ts)
            now = ts

        while finish and runtime.phase is GamePhase.PLAYING:
            now += cfg.tick_interval_ms
            runtime.step(now)

        _echo_summary(runtime.snapshot, cfg.min_hits_required)
        stats = runtime.pipeline.stats
        typer.echo(f"   Frames:       {stats['frames']} ({stats['dropped_frames']} dropped)")


@app.command("config")
def write_config(
    output: Optional[str] = typer.Argument(None, help="Output path (prints to stdout if omitted)"),
):
    """Write the default configuration as YAML."""
    import yaml

    cfg = GameConfig()
    if output is None:
        typer.echo(yaml.dump(cfg.to_dict(), default_flow_style=False, sort_keys=False))
        return
    cfg.to_yaml(output)
    typer.echo(f"💾 Saved default config to {output}")


def main():
    app()


if __name__ == "__main__":
    main()
