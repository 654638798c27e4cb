#!/usr/bin/env python3
"""
Command line interface for the transcription service
"""

import argparse
import asyncio
import json
import secrets
import sys
from pathlib import Path
from typing import List, Optional

from .config import ServiceFactory, Settings
from .core.exceptions import AllProvidersFailedError, ServiceError
from .core.logging import configure_logging


def load_settings(config_file: Optional[str]) -> Settings:
    if config_file:
        return Settings.from_file(config_file)
    return Settings.from_env()


def build_factory(args) -> ServiceFactory:
    settings = load_settings(args.config_file)
    if not settings.encryption_key and settings.storage_backend == "memory":
        # Keys given on the command line only live for this process
        settings.encryption_key = secrets.token_urlsafe(32)
    return ServiceFactory(settings)


def parse_api_keys(values: List[str]) -> List[tuple]:
    pairs = []
    for value in values:
        provider, sep, key = value.partition("=")
        if not sep or not provider or not key:
            raise argparse.ArgumentTypeError(f"Expected PROVIDER=KEY, got: {value}")
        pairs.append((provider, key))
    return pairs


async def _transcribe(args) -> int:
    factory = build_factory(args)
    service = factory.create_transcription_service()

    try:
        if args.api_key:
            manager = factory.create_api_key_manager()
            for provider, key in parse_api_keys(args.api_key):
                await manager.store_key(args.user, provider, key)

        audio = Path(args.file).read_bytes()
        outcome = await service.transcribe(
            audio,
            args.user,
            language=args.language,
            preferred_provider=args.provider,
        )
    finally:
        await service.close()

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
    else:
        print(outcome.text)
        fallback_note = " (fallback)" if outcome.used_fallback else ""
        print(
            f"\n[{outcome.provider}{fallback_note}] {outcome.word_count} words, "
            f"confidence {outcome.confidence:.2f}",
            file=sys.stderr,
        )
    return 0


def transcribe_command(args) -> int:
    """Handle transcribe command"""
    if not Path(args.file).is_file():
        print(f"❌ Audio file not found: {args.file}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_transcribe(args))
    except AllProvidersFailedError as e:
        print(f"❌ Transcription failed: {e}", file=sys.stderr)
        for attempt in e.attempts:
            detail = f": {attempt.error}" if attempt.error else ""
            print(f"  - {attempt.provider}: {attempt.status.value}{detail}", file=sys.stderr)
        return 2
    except (ServiceError, argparse.ArgumentTypeError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


async def _providers(args) -> int:
    factory = build_factory(args)
    service = factory.create_transcription_service()
    try:
        available = await service.get_available_providers()
    finally:
        await service.close()

    if args.json:
        print(json.dumps({"registered": service.registry.names, "available": available}, indent=2))
        return 0

    print("Provider Status:")
    for name in service.registry.names:
        status_icon = "✅" if name in available else "❌"
        print(f"  {status_icon} {name}: {'available' if name in available else 'unavailable'}")
    print(f"\nFallback chain: {' -> '.join(factory.settings.fallback_chain)}")
    return 0


def providers_command(args) -> int:
    """Handle providers command"""
    try:
        return asyncio.run(_providers(args))
    except ServiceError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


def validate_command(args) -> int:
    """Handle validate command"""
    try:
        factory = ServiceFactory(load_settings(args.config_file))
    except (ServiceError, FileNotFoundError) as e:
        print(f"❌ Validation failed: {e}", file=sys.stderr)
        return 1

    result = factory.validate_configuration()

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print("✅ Configuration is valid" if result["valid"] else "❌ Configuration has errors")
        for error in result["errors"]:
            print(f"  🔴 {error}")
        for warning in result["warnings"]:
            print(f"  🟡 {warning}")

    return 0 if result["valid"] else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stt",
        description="Speech-to-text with automatic provider fallback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Transcribe a file for a user
  python -m stt_services.cli transcribe meeting.mp3 --user alice

  # Prefer OpenAI with a key supplied for this run
  python -m stt_services.cli transcribe memo.m4a --user bob --provider OpenAIWhisper \\
      --api-key OpenAIWhisper=sk-...

  # Probe registered providers
  python -m stt_services.cli providers
        """,
    )
    parser.add_argument(
        "--config-file", "-c",
        help="Configuration file path (uses environment if not specified)",
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level")
    parser.add_argument(
        "--log-format", default="text", choices=["text", "json"], help="Log output format"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    transcribe_parser = subparsers.add_parser("transcribe", help="Transcribe an audio file")
    transcribe_parser.add_argument("file", help="Audio file to transcribe")
    transcribe_parser.add_argument("--user", "-u", required=True, help="User id")
    transcribe_parser.add_argument("--language", "-l", default="en", help="Language code")
    transcribe_parser.add_argument("--provider", "-p", help="Provider to try first")
    transcribe_parser.add_argument(
        "--api-key",
        action="append",
        default=[],
        metavar="PROVIDER=KEY",
        help="Provider API key for this user (repeatable)",
    )
    transcribe_parser.add_argument("--json", action="store_true", help="Output result as JSON")
    transcribe_parser.set_defaults(func=transcribe_command)

    providers_parser = subparsers.add_parser("providers", help="Show provider availability")
    providers_parser.add_argument("--json", action="store_true", help="Output as JSON")
    providers_parser.set_defaults(func=providers_command)

    validate_parser = subparsers.add_parser("validate", help="Validate configuration")
    validate_parser.add_argument("--json", action="store_true", help="Output results as JSON")
    validate_parser.set_defaults(func=validate_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(
        level=args.log_level,
        format_type=args.log_format,
        service_name="stt-cli",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
