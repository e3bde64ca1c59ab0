"""Command-line interface for Lets Pray."""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

from lets_pray import __version__
from lets_pray.domain.errors import NotFoundError, ProviderError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="lets-pray",
        description="Prayer time reminders with adhan playback",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"lets-pray {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the reminder service and API")
    serve_parser.add_argument("--host", "-H", help="Bind address (default: LETS_PRAY_HOST)")
    serve_parser.add_argument("--port", "-p", type=int, help="Port (default: LETS_PRAY_PORT)")
    serve_parser.add_argument("--settings", "-s", type=Path, help="Settings file path")
    serve_parser.add_argument("--audio-dir", "-a", type=Path, help="Directory with the adhan file")
    serve_parser.add_argument(
        "--log-level",
        "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LETS_PRAY_LOG_LEVEL)",
    )

    # times command
    times_parser = subparsers.add_parser("times", help="Show today's prayer times")
    times_parser.add_argument(
        "--location",
        "-L",
        required=True,
        help="Place name or address",
    )

    # system-info command
    subparsers.add_parser("system-info", help="Show detected location and timezone")

    # test-audio command
    test_parser = subparsers.add_parser("test-audio", help="Play the adhan once")
    test_parser.add_argument("--file", "-f", type=Path, help="Audio file to play")
    test_parser.add_argument(
        "--volume",
        "-V",
        type=int,
        default=80,
        help="Volume (0-100, default: 80)",
    )

    return parser


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the web server."""
    from lets_pray.config import get_config
    from lets_pray.main import run_server

    config = get_config()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.settings:
        config.settings_path = args.settings
    if args.audio_dir:
        config.audio_dir = args.audio_dir
    if args.log_level:
        config.log_level = args.log_level

    run_server(config)
    return 0


def cmd_times(args: argparse.Namespace) -> int:
    """Show prayer times."""
    from lets_pray.config import get_config
    from lets_pray.infrastructure.aladhan import AladhanPrayerTimeProvider

    provider = AladhanPrayerTimeProvider(timeout=get_config().provider_timeout)
    today = datetime.now().astimezone().date()

    try:
        prayers = asyncio.run(provider.fetch(args.location, today))
    except (NotFoundError, ProviderError) as e:
        print(f"❌ {e}")
        return 1

    print(f"\n📍 Location: {args.location}")
    print(f"🌍 Timezone: {provider.timezone_name}")
    print(f"📅 Date: {today.isoformat()}")
    print()
    print("=" * 30)
    for prayer in prayers:
        print(f"{prayer.name.icon} {prayer.name.display_name:<10} {prayer.time_str:>8}")
    print("=" * 30)
    return 0


def cmd_system_info(args: argparse.Namespace) -> int:  # noqa: ARG001
    """Show detected location and timezone."""
    from lets_pray.infrastructure.location import IpInfoLocationResolver

    try:
        info = asyncio.run(IpInfoLocationResolver().detect())
    except ProviderError as e:
        print(f"❌ {e}")
        return 1

    print(f"📍 Location: {info.location}")
    print(f"🌍 Timezone: {info.timezone}")
    return 0


def cmd_test_audio(args: argparse.Namespace) -> int:
    """Play the adhan (or the built-in tone) once."""
    from lets_pray.config import get_config
    from lets_pray.infrastructure.audio import get_best_player
    from lets_pray.infrastructure.tone import ensure_fallback_tone
    from lets_pray.services.audio_controller import AudioPlaybackController

    config = get_config()
    file_path = args.file or config.adhan_path

    async def _test() -> int:
        player = get_best_player(file_path.suffix.lower())
        controller = AudioPlaybackController(
            player,
            file_path,
            ensure_fallback_tone(config.cache_dir),
            fallback_player=get_best_player(".wav"),
            volume=args.volume,
        )
        print(f"🔊 Player: {player.__class__.__name__}")
        print(f"📂 File: {file_path}")
        print(f"🔈 Volume: {args.volume}%")
        print("▶️  Playing... (Ctrl+C to stop)")

        await controller.play()
        if not controller.is_playing():
            print("❌ Nothing could be played")
            return 1
        try:
            while controller.is_playing():
                await asyncio.sleep(0.2)
        finally:
            await controller.stop()
        print("✅ Done!")
        return 0

    try:
        return asyncio.run(_test())
    except KeyboardInterrupt:
        print("⏹️  Stopped")
        return 0


def main() -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        # serve by default
        args = parser.parse_args(["serve"])

    commands = {
        "serve": cmd_serve,
        "times": cmd_times,
        "system-info": cmd_system_info,
        "test-audio": cmd_test_audio,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
