"""CRUD operations for the stories and documents tables."""

from __future__ import annotations

from entity_scorer.db.sqlite_db import get_connection


async def ensure_story(story_id: str) -> None:
    """Create the story row if it does not exist yet."""
    conn = await get_connection()
    try:
        await conn.execute(
            "INSERT OR IGNORE INTO stories (id) VALUES (?)",
            (story_id,),
        )
        await conn.commit()
    finally:
        await conn.close()


async def story_exists(story_id: str) -> bool:
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT 1 FROM stories WHERE id = ?", (story_id,))
        return await cursor.fetchone() is not None
    finally:
        await conn.close()


async def get_turn(story_id: str) -> int:
    """Current turn counter. Returns 0 for an unknown story."""
    conn = await get_connection()
    try:
        cursor = await conn.execute("SELECT turn FROM stories WHERE id = ?", (story_id,))
        row = await cursor.fetchone()
        if row is None:
            return 0
        return row["turn"] or 0
    finally:
        await conn.close()


async def advance_turn(story_id: str) -> int:
    """Increment and return the story's turn counter."""
    conn = await get_connection()
    try:
        await conn.execute(
            "UPDATE stories SET turn = turn + 1, updated_at = datetime('now') WHERE id = ?",
            (story_id,),
        )
        await conn.commit()
        cursor = await conn.execute("SELECT turn FROM stories WHERE id = ?", (story_id,))
        row = await cursor.fetchone()
        return row["turn"] if row else 0
    finally:
        await conn.close()


async def load_documents(story_id: str) -> dict[str, str]:
    """All documents of a story as name -> body."""
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT name, body FROM documents WHERE story_id = ? ORDER BY name",
            (story_id,),
        )
        rows = await cursor.fetchall()
        return {row["name"]: row["body"] for row in rows}
    finally:
        await conn.close()


async def get_document(story_id: str, name: str) -> str | None:
    conn = await get_connection()
    try:
        cursor = await conn.execute(
            "SELECT body FROM documents WHERE story_id = ? AND name = ?",
            (story_id, name),
        )
        row = await cursor.fetchone()
        return row["body"] if row else None
    finally:
        await conn.close()


async def save_documents(story_id: str, documents: dict[str, str]) -> int:
    """Upsert documents. Returns the number written."""
    if not documents:
        return 0
    conn = await get_connection()
    try:
        await conn.executemany(
            """
            INSERT INTO documents (story_id, name, body)
            VALUES (?, ?, ?)
            ON CONFLICT(story_id, name) DO UPDATE SET
                body = excluded.body,
                updated_at = datetime('now')
            """,
            [(story_id, name, body) for name, body in documents.items()],
        )
        await conn.commit()
        return len(documents)
    finally:
        await conn.close()


async def delete_documents(story_id: str, names: list[str]) -> int:
    """Delete the named documents. Returns deleted count."""
    if not names:
        return 0
    conn = await get_connection()
    try:
        deleted = 0
        for name in names:
            cursor = await conn.execute(
                "DELETE FROM documents WHERE story_id = ? AND name = ?",
                (story_id, name),
            )
            deleted += cursor.rowcount
        await conn.commit()
        return deleted
    finally:
        await conn.close()
