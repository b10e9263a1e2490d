from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console

from .audio import ExportFormat, read_wav
from .logging_utils import configure_logging, debug_enabled, log_exception
from .presets import PRESETS
from .rng import RandomSource
from .session import SoundSession
from .spinner import render_error, spinner

_LOGGER = logging.getLogger("sfxgen.cli")
_CONSOLE = Console()
_DEFAULT_FORMAT = "44100,16,1"


def _describe(session: SoundSession) -> str:
    params = session.params
    wave = session.wave
    return (
        f"{params.wave_type.name.lower()} wave, seed {params.rand_seed}, "
        f"{wave.sample_count} samples ({wave.duration:.2f}s)"
    )


def _render_outputs(session: SoundSession, args: argparse.Namespace) -> None:
    fmt = ExportFormat.parse(args.format)
    written: Path | None = None
    with spinner("Synthesizing") as status:
        wave = session.wave
        if args.output is not None:
            status.update(f"Writing {args.output}")
            written = session.export(args.output, fmt)
    if args.params is not None:
        path = session.save(args.params)
        _CONSOLE.print(f"Wrote parameters to {path}")
    if written is not None:
        _CONSOLE.print(
            f"Wrote {_describe(session)} to {written} "
            f"({fmt.sample_rate} Hz, {fmt.sample_size} bit, {fmt.channels} ch)"
        )
    if args.play:
        wave.formatted(fmt).play()


def _convert_wav(source: Path, args: argparse.Namespace) -> None:
    fmt = ExportFormat.parse(args.format)
    wave = read_wav(source).formatted(fmt)
    if args.output is not None:
        path = wave.save(args.output)
        _CONSOLE.print(f"Converted {source} to {path} ({wave.duration:.2f}s)")
    if args.play:
        wave.play()


def _add_output_arguments(parser: argparse.ArgumentParser, *, default_output: str | None) -> None:
    parser.add_argument("--output", "-o", type=str, default=default_output, help="Output .wav")
    parser.add_argument("--params", type=str, default=None, help="Also save .rfx/.sfs params")
    parser.add_argument(
        "--format",
        type=str,
        default=_DEFAULT_FORMAT,
        help="<sample_rate>,<sample_size>,<channels> (default: %(default)s)",
    )
    parser.add_argument("--play", action="store_true", help="Play the result")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sfxgen", description="Retro sound effect generator.")
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="Generate a sound from a preset.")
    generate.add_argument("preset", choices=sorted(PRESETS), type=str)
    generate.add_argument("--seed", type=int, default=None)
    _add_output_arguments(generate, default_output=None)

    render = sub.add_parser("render", help="Render a .rfx/.sfs file (or convert a .wav).")
    render.add_argument("input", type=str)
    _add_output_arguments(render, default_output=None)

    mutate = sub.add_parser("mutate", help="Nudge a parameter file slightly.")
    mutate.add_argument("input", type=str)
    mutate.add_argument("--seed", type=int, default=None)
    _add_output_arguments(mutate, default_output=None)

    play = sub.add_parser("play", help="Play a .wav or .rfx/.sfs file.")
    play.add_argument("input", type=str)
    return parser


def _session(seed: int | None) -> SoundSession:
    return SoundSession(rng=RandomSource(seed))


def _subject(args: argparse.Namespace) -> str | None:
    if args.command == "generate":
        return f"preset {args.preset!r}"
    return getattr(args, "input", None)


def main(argv: list[str] | None = None) -> int:
    configure_logging(log_to_file=True)
    parser = build_parser()
    args = parser.parse_args(argv)
    context = f"sfxgen {args.command}"
    try:
        if args.command == "generate":
            session = _session(args.seed)
            session.apply_preset(args.preset)
            if args.output is None and args.params is None and not args.play:
                args.output = f"{args.preset}.wav"
            _render_outputs(session, args)
            return 0

        if args.command == "render":
            source = Path(args.input)
            if source.suffix.lower() == ".wav":
                if args.params is not None:
                    parser.error("--params cannot be used with a .wav input")
                if args.output is None and not args.play:
                    args.output = str(source.with_name(f"{source.stem}_converted.wav"))
                _convert_wav(source, args)
                return 0
            session = _session(None)
            session.load(source)
            if args.output is None and not args.play:
                args.output = str(source.with_suffix(".wav"))
            _render_outputs(session, args)
            return 0

        if args.command == "mutate":
            session = _session(args.seed)
            session.load(args.input)
            session.mutate()
            if args.output is None and args.params is None and not args.play:
                source = Path(args.input)
                args.params = str(source.with_name(f"{source.stem}_mutated{source.suffix}"))
            _render_outputs(session, args)
            return 0

        if args.command == "play":
            source = Path(args.input)
            if source.suffix.lower() == ".wav":
                wave = read_wav(source)
            else:
                session = _session(None)
                session.load(source)
                wave = session.wave
            wave.play()
            return 0

        parser.print_help()
        return 1
    except Exception as exc:
        subject = _subject(args)
        _LOGGER.warning("%s failed for %s: %s", context, subject, exc, exc_info=debug_enabled())
        log_exception(context, exc, source=subject)
        render_error(context, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
