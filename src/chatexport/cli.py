"""Command-line interface for chatexport."""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console

from . import __version__
from .core.assembler import DocumentAssembler
from .logging_config import level_for, setup_logging
from .models.config import ConversationOptions, Platform, RendererKind
from .models.messages import Message
from .security.url_validator import UrlValidator


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="chatexport",
        description="Convert an extracted chat transcript (JSON) into plain text or Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Input is a JSON array of {"role": ..., "content": "<html>"} objects.

Examples:
  # Plain text to stdout
  chatexport conversation.json

  # Markdown with a metadata header, written to a file
  chatexport conversation.json --format markdown --header -o chat.md

  # Read from stdin and record the source URL
  cat conversation.json | chatexport - --url https://claude.ai/chat/123 --platform claude
        """,
    )

    parser.add_argument(
        "input",
        help="JSON file with the extracted messages ('-' for stdin)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Rendering
    render_group = parser.add_argument_group("rendering")
    render_group.add_argument(
        "--format",
        "-f",
        choices=[kind.value for kind in RendererKind],
        default=RendererKind.TEXT.value,
        help="Output format (default: text)",
    )
    render_group.add_argument(
        "--platform",
        "-p",
        choices=[platform.value for platform in Platform],
        default=Platform.UNKNOWN.value,
        help="Platform the conversation came from (default: unknown)",
    )
    render_group.add_argument(
        "--url",
        type=str,
        default="",
        metavar="URL",
        help="Source URL written at the top of the export (allow-listed chat hosts only)",
    )
    render_group.add_argument(
        "--header",
        action="store_true",
        help="Prepend a title/platform/date header (Markdown only)",
    )
    render_group.add_argument(
        "--no-metadata",
        action="store_true",
        help="Omit the chat url line and header",
    )
    render_group.add_argument(
        "--options",
        type=Path,
        default=None,
        metavar="FILE",
        help="JSON file with conversation options (flags override it)",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write the export to FILE instead of stdout",
    )
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress output",
    )

    return parser


def load_messages(source: str) -> list[Message]:
    """
    Load extracted messages from a JSON file or stdin.

    Args:
        source: File path, or "-" for stdin

    Returns:
        Parsed messages in input order

    Raises:
        ValueError: If the input is not a JSON array of message objects
    """
    raw = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Input is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ValueError("Input must be a JSON array of messages")

    messages = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"Message {index} is not an object")
        try:
            messages.append(Message.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"Message {index} is invalid: {e}") from e
    return messages


def build_options(args: argparse.Namespace) -> ConversationOptions:
    """Merge the options file (if any) with command-line flags."""
    options = ConversationOptions.from_json_file(args.options) if args.options else ConversationOptions()

    overrides: dict = {}
    if args.platform != Platform.UNKNOWN.value:
        overrides["platform"] = args.platform
    if args.url:
        overrides["url"] = args.url
    if args.header:
        overrides["include_header"] = True
    if args.no_metadata:
        overrides["include_metadata"] = False

    return options.model_copy(update=overrides)


def run_export(args: argparse.Namespace) -> int:
    """Run the export with given arguments."""
    console = Console(stderr=True)

    setup_logging(level_for(args.verbose, args.quiet), force=True)

    try:
        options = build_options(args)
        messages = load_messages(args.input)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if options.url and not args.quiet and options.include_metadata:
        reason = UrlValidator().get_rejection_reason(options.url)
        if reason:
            console.print(f"[yellow]Warning:[/yellow] chat url omitted ({reason})")

    document = DocumentAssembler().assemble_document(messages, args.format, options)

    if args.output:
        try:
            args.output.write_text(document.text + "\n", encoding="utf-8")
        except OSError as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1
    else:
        sys.stdout.write(document.text + "\n")

    if not args.quiet:
        target = str(args.output) if args.output else "stdout"
        console.print(
            f"[green]Exported[/green] {document.message_count} messages as {args.format} to {target}"
        )
        if document.degraded:
            console.print(
                f"[yellow]{len(document.degradations)} element(s) fell back to plain text[/yellow]"
            )
            if args.verbose:
                for degradation in document.degradations:
                    console.print(
                        f"  {degradation.stage} <{degradation.element}>: {degradation.reason}"
                    )

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_export(args)


if __name__ == "__main__":
    sys.exit(main())
