"""
Command line interface for Regulation Search.

Usage:
    # List the loaded regulations
    python main.py --list

    # Search
    python main.py --query "京都の道路に関する条例"

    # Interactive search loop
    python main.py --interactive
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from regulation_search.config import load_config
from regulation_search.errors import StoreReadError
from regulation_search.utils import setup_logging
from .session import RegulationSession, create_session, format_results

logger = logging.getLogger(__name__)

RETRY_PROMPT = "再試行しますか？ [y/N]: "
SEARCH_PROMPT = "検索> "
QUIT_COMMANDS = (":q", ":quit", ":exit")
RELOAD_COMMANDS = (":r", ":reload")


def load_with_retry(session: RegulationSession, ask: Optional[Callable[[str], str]] = None) -> bool:
    """
    Load records, offering a manual retry after each failure.

    Args:
        session: Session to load
        ask: Prompt function (defaults to input)

    Returns:
        True once records are loaded, False if the user gives up
    """
    ask = ask or input
    while True:
        try:
            session.load()
            return True
        except StoreReadError as e:
            logger.debug(f"Store read failed: {e}")
            print(session.error)
            try:
                answer = ask(RETRY_PROMPT)
            except EOFError:
                return False
            if answer.strip().lower() not in ('y', 'yes'):
                return False


def print_results(query: Optional[str], session: RegulationSession) -> None:
    print(f"\n{'='*60}")
    if query:
        print(f"検索結果: '{query}' ({len(session.results)}件)")
    else:
        print(f"条例一覧 ({len(session.results)}件)")
    print(f"{'='*60}\n")
    print(format_results(session.results))
    print()


def run_interactive(session: RegulationSession, ask: Optional[Callable[[str], str]] = None) -> None:
    """Read queries until EOF or a quit command. A blank query shows all records."""
    ask = ask or input
    while True:
        try:
            query = ask(SEARCH_PROMPT)
        except EOFError:
            print()
            return

        command = query.strip().lower()
        if command in QUIT_COMMANDS:
            return
        if command in RELOAD_COMMANDS:
            if load_with_retry(session, ask):
                print_results(None, session)
            continue

        session.search(query)
        print_results(query.strip(), session)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Regulation Search - natural-language search over municipal regulations',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show effective configuration
  python main.py --show-config

  # List regulations
  python main.py --list

  # Search with a stricter threshold
  python main.py --query "練馬区の道路に関する条例" --min-relevance 0.1
        """
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to config.yaml file (default: config.yaml in project root)'
    )
    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Display effective configuration and exit'
    )
    parser.add_argument(
        '--query',
        type=str,
        default=None,
        help='Search query'
    )
    parser.add_argument(
        '--list',
        action='store_true',
        help='List loaded regulations'
    )
    parser.add_argument(
        '--interactive',
        action='store_true',
        help='Interactive search loop (:r reloads, :q quits)'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=None,
        help='Maximum number of regulations to load (1-100)'
    )
    parser.add_argument(
        '--min-relevance',
        type=float,
        default=None,
        help='Keep results scored above this threshold'
    )
    parser.add_argument(
        '--provider',
        type=str,
        default=None,
        choices=['openai', 'ollama', 'custom'],
        help='LLM provider for scoring'
    )
    parser.add_argument(
        '--model',
        type=str,
        default=None,
        help='LLM model for scoring'
    )
    parser.add_argument(
        '--temperature',
        type=float,
        default=None,
        help='LLM temperature for scoring'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.show_config:
        config.show()
        return 0

    try:
        session = create_session(
            config=config,
            provider=args.provider,
            model=args.model,
            temperature=args.temperature,
            min_relevance=args.min_relevance,
            limit=args.limit
        )
    except ValueError as e:
        logger.error(f"Failed to initialize: {e}")
        return 1

    if not load_with_retry(session):
        return 1

    if args.interactive:
        run_interactive(session)
    elif args.query is not None:
        session.search(args.query)
        print_results(args.query.strip(), session)
    else:
        if not args.list:
            logger.warning("No query given, listing regulations. Use --query or --interactive to search.")
        print_results(None, session)

    return 0


if __name__ == "__main__":
    sys.exit(main())
