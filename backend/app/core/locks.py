"""
Prozessweite Sperren pro Benutzer.

Lesen-dann-Schreiben-Abläufe (Überschneidungsprüfung bei Anträgen,
Pausengutschrift-Anträge, Tages-Überschreibung, Jahresabschluss) laufen
unter user_lock(user_id), damit zwei gleichzeitige Requests für denselben
Benutzer nacheinander ausgeführt werden.
"""
import asyncio
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager

_locks: defaultdict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)


@asynccontextmanager
async def user_lock(user_id: uuid.UUID):
    lock = _locks[user_id]
    async with lock:
        yield
