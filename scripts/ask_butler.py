#!/usr/bin/env python3
"""Interactive chat against the movie butler pipeline, without the HTTP layer."""

import argparse
import asyncio
from uuid import uuid4

from app.core.logging import setup_logging
from app.database import async_session_maker
from app.schemas.chat import ChatMessage
from app.services.butler import get_movie_butler


def render(message: ChatMessage) -> None:
    speaker = "you" if message.is_user else "butler"
    print(f"\n[{speaker}] {message.content}")
    if message.movie:
        movie = message.movie
        print(f"  🎬 {movie.title} ({movie.year}) | IMDb {movie.imdb_rating} | {movie.genre}")
    if message.recommendation:
        verdict = "✓ worth watching" if message.recommendation.worth_watching else "✗ maybe skip"
        print(f"  {verdict}")
        print(f"  {message.recommendation.recommendation}")


async def chat(user_id: str | None, show_logs: bool) -> None:
    butler = get_movie_butler()
    conversation_id = f"cli_{uuid4()}"
    history: list[ChatMessage] = []

    print("=" * 60)
    print("BINGEHOUSE MOVIE BUTLER (empty line to quit)")
    print("=" * 60)

    while True:
        query = input("\n> ").strip()
        if not query:
            break

        history.append(ChatMessage.from_user(query, user_id))
        async with async_session_maker() as db:
            result = await butler.process_query(query, conversation_id, user_id=user_id, db=db)
            await db.commit()

        payload = {"error": result.message} if result.error else result.to_response()
        reply = ChatMessage.from_response(payload, user_id)
        history.append(reply)
        render(reply)

        if show_logs:
            for entry in result.logs:
                print(f"    {entry['status']:<7} {entry['step']}")

    print(f"\n{len(history)} messages exchanged.")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--user-id", default=None, help="user id; omit to chat as a guest")
    parser.add_argument("--logs", action="store_true", help="print the step trace after each reply")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.logs else None)
    asyncio.run(chat(args.user_id, args.logs))


if __name__ == "__main__":
    main()
