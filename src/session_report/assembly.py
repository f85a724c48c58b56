# ABOUTME: Gathers a session snapshot from independent async data sources.
# ABOUTME: Joins every fetch before evaluation so the engine only sees a closed bundle.

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from .schemas import SessionBundle, SessionMetadata

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


async def _empty() -> tuple:
    return ()


async def _none() -> None:
    return None


async def gather_session_bundle(
    metadata: Optional[Fetcher] = None,
    transcript: Optional[Fetcher] = None,
    chats: Optional[Fetcher] = None,
    activities: Optional[Fetcher] = None,
    polls: Optional[Fetcher] = None,
    students: Optional[Fetcher] = None,
    reactions: Optional[Fetcher] = None,
) -> SessionBundle:
    """
    Await all fetchers concurrently and freeze their results into a bundle.

    A source left as None contributes an empty collection. The first fetcher
    error propagates once every fetch has been joined.
    """

    sources = (transcript, chats, activities, polls, students, reactions)
    results = await asyncio.gather(
        (metadata or _none)(),
        *[(fetch or _empty)() for fetch in sources],
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result

    meta, *collections = results
    if meta is not None and not isinstance(meta, SessionMetadata):
        raise TypeError(f"Metadata fetcher returned {type(meta).__name__}, expected SessionMetadata.")
    frozen = [tuple(_as_iterable(rows)) for rows in collections]
    logger.debug("Gathered session bundle with %s rows", [len(rows) for rows in frozen])
    return SessionBundle(
        metadata=meta,
        transcript=frozen[0],
        chats=frozen[1],
        activities=frozen[2],
        polls=frozen[3],
        students=frozen[4],
        reactions=frozen[5],
    )


def _as_iterable(rows: Optional[Iterable]) -> Iterable:
    return () if rows is None else rows
