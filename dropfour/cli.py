"""
Drop Four CLI - Command-line interface.

Usage:
    dropfour play [--local] [--difficulty LEVEL]   Play in the terminal
    dropfour move <columns>                        Heuristic choice for a position
    dropfour serve [--host HOST] [--port PORT]     Run the HTTP API
"""

import argparse
import asyncio
import sys

from .config import Settings
from .engine_core import (
    Cell, Difficulty, GameStatus, apply_move, board_to_string, choose_heuristic_move,
    create_board, game_status, NO_MOVE,
)
from .errors import ConfigurationError
from .logging_config import setup_logging


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Drop Four - Connect Four against a remote AI",
        prog="dropfour",
    )
    parser.add_argument("--log-level", help="Override DROPFOUR_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a game in the terminal")
    play_parser.add_argument("--local", action="store_true", help="Use the local heuristic instead of the remote AI")
    play_parser.add_argument(
        "--difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.MEDIUM.value,
    )

    # Move command
    move_parser = subparsers.add_parser("move", help="Print the heuristic move for a position")
    move_parser.add_argument("columns", help="Comma-separated 0-based columns played so far, human first")
    move_parser.add_argument("--seed", type=int, default=None, help="Seed for the random branch")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(2)
    setup_logging(args.log_level or settings.log_level)

    if args.command == "play":
        asyncio.run(cmd_play(args, settings))
    elif args.command == "move":
        cmd_move(args)
    elif args.command == "serve":
        cmd_serve(args, settings)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_move(args):
    """Replay a move list and print the heuristic choice for the side to move."""
    import random

    board = create_board()
    player = Cell.PLAYER
    try:
        columns = [int(c) for c in args.columns.split(",") if c.strip()]
    except ValueError:
        print(f"Error: Invalid column list: {args.columns}")
        sys.exit(1)

    for column in columns:
        board, row = apply_move(board, column, player)
        if row == NO_MOVE:
            print(f"Error: Column {column} is not playable")
            sys.exit(1)
        player = player.opponent

    status, winner, _ = game_status(board)
    print(board_to_string(board))
    if status != GameStatus.PLAYING:
        print(f"Game over: {winner.value if winner else 'draw'}")
        return

    choice = choose_heuristic_move(board, player, player.opponent, random.Random(args.seed))
    print(f"{player.value} plays column {choice.column} ({choice.reason.value})")


async def cmd_play(args, settings: Settings):
    """Interactive game against the AI."""
    from .remote import InferenceClient
    from .scheduler import RequestScheduler
    from .session import JsonFileStorage, MemoryStorage, SessionManager

    storage = JsonFileStorage(settings.stats_path) if settings.stats_path else MemoryStorage()

    if args.local:
        manager = SessionManager(storage=storage)
        await _play_loop(manager, args.difficulty)
        return

    async with InferenceClient(settings.endpoint_url, request_timeout=settings.request_timeout) as client:
        async with RequestScheduler(call=client, config=settings.scheduler) as scheduler:
            manager = SessionManager(
                scheduler=scheduler,
                decision_config=settings.decision,
                storage=storage,
            )
            await _play_loop(manager, args.difficulty)


async def _play_loop(manager, difficulty: str):
    session = manager.create_session(difficulty=difficulty)
    game = session.game
    print(f"Connect Four ({game.difficulty.value}). You are X, the AI is O.")

    while True:
        _print_board(game.board)

        if game.status != GameStatus.PLAYING:
            if game.winner == Cell.PLAYER:
                print("You win!")
            elif game.winner == Cell.AI:
                print("The AI wins.")
            else:
                print("Draw.")
            stats = game.stats
            print(f"Record: {stats.wins} wins, {stats.losses} losses, {stats.draws} draws")
            answer = await asyncio.to_thread(input, "Play again? [y/N] ")
            if answer.strip().lower() != "y":
                break
            game.reset()
            continue

        answer = await asyncio.to_thread(input, f"Your move (1-{game.board.cols}, q to quit): ")
        answer = answer.strip().lower()
        if answer in ("q", "quit"):
            break
        try:
            column = int(answer) - 1
        except ValueError:
            print("Enter a column number.")
            continue
        if not game.make_move(column):
            print("That column is not playable.")
            continue

        if game.is_ai_turn():
            print("AI is thinking...")
            await session.play_ai_turn()
            status = session.status()
            if status["error"]:
                print(f"  ({status['error']})")
            if status["commentary"]:
                print(f"AI: {status['commentary']}")

    manager.end_session(session.session_id)


def _print_board(board):
    print()
    print(board_to_string(board))
    print(" ".join(str(c + 1) for c in range(board.cols)))
    print()


def cmd_serve(args, settings: Settings):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "dropfour.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
