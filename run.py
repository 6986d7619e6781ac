#!/usr/bin/env python3
"""
Entry point script to chat with the NoteAI assistant from a terminal.

This script should be run from the project root directory:
    python run.py

Examples:
    python run.py --streaming
    python run.py --conversation-id 6b0c... --streaming
    python run.py --note "meeting 2024-05-02"

Commands inside the chat:
    /history         reload the conversation's messages from the backend
    /conversations   list your conversations, most recently updated first
    /quit            exit

Environment variables:
    CHAT_API_BASE_URL: Backend base URL (default: http://localhost/v1)
    CHAT_API_KEY: Chat application API key (required)
    CHAT_USER_ID: User identifier sent with requests (default: user-123)
    CHAT_RESPONSE_MODE: blocking or streaming (default: blocking)
    NOTES_DIR: Directory of local notes (default: ~/noteai_notes)
    LOG_LEVEL: Logging level (default: INFO)
"""
import argparse
import asyncio
import functools
import logging
import sys

from application.entity.message import MessageStatus
from application.services.chat.factory import (
    create_chat_client,
    create_conversation_list,
    open_session,
)
from application.services.chat.session import ConversationSession
from application.services.chat_api.client import ChatAPIClient
from application.services.chat_api.constants import (
    RESPONSE_MODE_BLOCKING,
    RESPONSE_MODE_STREAMING,
)
from application.services.notes.note_store import NoteStore
from common.config.config import CHAT_RESPONSE_MODE, LOG_LEVEL, NOTES_DIR
from common.exception.exceptions import ChatAPIException


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with the NoteAI assistant")
    parser.add_argument("--conversation-id", help="Continue an existing conversation")
    parser.add_argument(
        "--streaming",
        action="store_true",
        default=CHAT_RESPONSE_MODE == RESPONSE_MODE_STREAMING,
        help="Receive answers as a server-sent event stream",
    )
    parser.add_argument(
        "--note",
        help="Note this chat is about; a new conversation is linked to it",
    )
    return parser.parse_args(argv)


async def print_conversations(client: ChatAPIClient) -> None:
    conversations = create_conversation_list(client)
    await conversations.load_conversations()
    if conversations.error_message:
        print(conversations.error_message)
    for conversation in conversations.conversations:
        updated = conversation.updated_datetime.strftime("%Y-%m-%d %H:%M")
        print(f"  {conversation.id}  {updated}  {conversation.name}")


def print_transcript(session: ConversationSession) -> None:
    for message in session.messages:
        print(f"you> {message.query}")
        if message.status == MessageStatus.ERROR:
            print(f"  [error] {message.error}")
        else:
            print(f"assistant> {message.clean_answer}")


class LongWaitNotice:
    """Prints a single notice when the session raises its long-wait flag."""

    def __init__(self):
        self.shown = False

    def __call__(self, session: ConversationSession) -> None:
        if session.wait_signal.show_long_wait and not self.shown:
            self.shown = True
            print("\n(still waiting for the assistant, this is taking longer than usual)")
        elif not session.wait_signal.show_long_wait:
            self.shown = False


async def chat(args: argparse.Namespace) -> int:
    client = create_chat_client()
    store = NoteStore(NOTES_DIR)

    conversation_id = args.conversation_id
    if not conversation_id and args.note:
        conversation_id = store.conversation_for(args.note)

    on_created = functools.partial(store.link_conversation, args.note) if args.note else None

    mode = RESPONSE_MODE_STREAMING if args.streaming else RESPONSE_MODE_BLOCKING
    session = await open_session(
        client,
        conversation_id=conversation_id,
        response_mode=mode,
        on_new_conversation_created=on_created,
    )
    session.add_listener(LongWaitNotice())

    if session.error_message:
        print(session.error_message)
    print_transcript(session)

    try:
        while True:
            line = await asyncio.to_thread(input, "you> ")
            command = line.strip()
            if command in ("/quit", "/exit"):
                break
            if command == "/history":
                await session.load_messages()
                if session.error_message:
                    print(session.error_message)
                print_transcript(session)
                continue
            if command == "/conversations":
                await print_conversations(client)
                continue

            message = await session.send_message(line)
            if message is None:
                continue
            if message.status == MessageStatus.ERROR:
                print(f"  [error] {message.error}")
            else:
                print(f"assistant> {message.clean_answer}")
    except (EOFError, KeyboardInterrupt):
        print()
    finally:
        await session.close()

    return 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = parse_args(argv)

    try:
        return asyncio.run(chat(args))
    except ChatAPIException as e:
        print(f"Error: {e.description}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
