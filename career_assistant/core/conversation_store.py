"""
SQLite conversation store: conversations and their append-only messages.

Creates the DB file on first use. Tables: conversations (id, user_id, resume_id,
title, created_at, updated_at) and messages (seq, id, conversation_id, role, text,
source, cited_chunks, created_at). One connection per call, so worker threads can
share a store instance.
"""

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from career_assistant.core.errors import ConversationNotFoundError
from career_assistant.core.types import ConversationTurn, RetrievedChunk

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New conversation"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS conversations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        resume_id TEXT,
        title TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        conversation_id TEXT NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
        role TEXT NOT NULL,
        text TEXT NOT NULL,
        source TEXT,
        cited_chunks TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id)",
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_turn(row: sqlite3.Row) -> ConversationTurn:
    raw_chunks = row["cited_chunks"]
    chunks = [RetrievedChunk.from_dict(c) for c in json.loads(raw_chunks)] if raw_chunks else None
    return ConversationTurn(
        id=row["id"],
        role=row["role"],
        text=row["text"],
        source=row["source"],
        cited_chunks=chunks,
        created_at=row["created_at"],
    )


class SQLiteConversationStore:
    """ConversationStore backed by a single SQLite file."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self.init_db()

    def _get_conn(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the tables if they do not exist."""
        conn = self._get_conn()
        try:
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
        finally:
            conn.close()

    def create_conversation(self, user_id: str, resume_id: str | None = None) -> str:
        conversation_id = str(uuid.uuid4())
        now = _now()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO conversations (id, user_id, resume_id, title, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (conversation_id, user_id, resume_id, DEFAULT_TITLE, now, now),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("[conversation_store:create_conversation] id=%s user_id=%s", conversation_id, user_id)
        return conversation_id

    def find_conversation(self, conversation_id: str) -> dict[str, Any] | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT id, user_id, resume_id, title, created_at, updated_at FROM conversations WHERE id = ?",
                (conversation_id,),
            ).fetchone()
        finally:
            conn.close()
        return dict(row) if row else None

    def update_title(self, conversation_id: str, title: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE conversations SET title = ? WHERE id = ?",
                (title, conversation_id),
            )
            conn.commit()
        finally:
            conn.close()

    def append_message(
        self,
        conversation_id: str,
        role: str,
        text: str,
        source: str | None,
        cited_chunks: list[RetrievedChunk] | None = None,
    ) -> str:
        """Insert one message and bump the conversation's updated_at. Returns the message id."""
        message_id = str(uuid.uuid4())
        now = _now()
        chunks_json = json.dumps([c.to_dict() for c in cited_chunks]) if cited_chunks else None
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO messages (id, conversation_id, role, text, source, cited_chunks, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (message_id, conversation_id, role, text, source, chunks_json, now),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now, conversation_id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(
            "[conversation_store:append_message] conversation_id=%s role=%s source=%s text_len=%d",
            conversation_id, role, source, len(text or ""),
        )
        return message_id

    def list_recent_messages(self, conversation_id: str, limit: int) -> list[ConversationTurn]:
        """Most recent `limit` messages, newest first."""
        if limit <= 0:
            return []
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, role, text, source, cited_chunks, created_at FROM messages "
                "WHERE conversation_id = ? ORDER BY seq DESC LIMIT ?",
                (conversation_id, limit),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_turn(r) for r in rows]

    def list_conversations(self, user_id: str) -> list[dict[str, Any]]:
        """Conversations for a user, most recently updated first, each with its last message."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, title, resume_id, created_at, updated_at FROM conversations "
                "WHERE user_id = ? ORDER BY updated_at DESC",
                (user_id,),
            ).fetchall()
            out = []
            for row in rows:
                last = conn.execute(
                    "SELECT id, role, text, source, created_at FROM messages "
                    "WHERE conversation_id = ? ORDER BY seq DESC LIMIT 1",
                    (row["id"],),
                ).fetchone()
                item = dict(row)
                item["last_message"] = dict(last) if last else None
                out.append(item)
        finally:
            conn.close()
        return out

    def get_conversation(self, conversation_id: str, user_id: str) -> dict[str, Any]:
        """Conversation with all messages in chronological order. Raises ConversationNotFoundError."""
        conversation = self.find_conversation(conversation_id)
        if conversation is None or conversation["user_id"] != user_id:
            raise ConversationNotFoundError(conversation_id)
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, role, text, source, cited_chunks, created_at FROM messages "
                "WHERE conversation_id = ? ORDER BY seq ASC",
                (conversation_id,),
            ).fetchall()
        finally:
            conn.close()
        messages = [_row_to_turn(r) for r in rows]
        conversation["messages"] = messages
        conversation["message_count"] = len(messages)
        return conversation
