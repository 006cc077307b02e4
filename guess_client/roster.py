"""
roster.py
Maps the class roster onto wallet addresses through the student-id
registry contract, so a winner can be shown by name.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Iterable, List

from guess_client.exceptions import RemoteReadError
from guess_client.interfaces import LedgerClient
from guess_client.models import Student

logger = logging.getLogger(__name__)

EMPTY_ADDRESS = "0x0000000000000000000000000000000000000000"


def load_students(path: str) -> List[Student]:
    """Read a JSON list of {"sid": ..., "name": ...} objects."""
    with open(path, encoding="utf-8") as f:
        rows = json.load(f)
    return [Student(sid=str(row["sid"]), name=row["name"]) for row in rows]


class StudentRoster:
    def __init__(self, registry: LedgerClient, students: Iterable[Student] = (), stagger: float = 0.1):
        self.registry = registry
        self.students = list(students)
        self.stagger = stagger

    async def refresh(self) -> int:
        """Look up every student's wallet; returns how many lookups succeeded."""
        resolved = 0
        for i, student in enumerate(self.students):
            if i:
                await asyncio.sleep(self.stagger)
            try:
                address = await self.registry.call("querymySID", [student.sid])
            except RemoteReadError as exc:
                logger.debug("querymySID(%s) failed: %s", student.sid, exc)
                continue
            student.wallet_addr = address
            resolved += 1
        return resolved

    def name_for(self, address: str) -> str:
        if address and address != EMPTY_ADDRESS:
            for student in self.students:
                if student.wallet_addr and student.wallet_addr.lower() == address.lower():
                    return student.name
        return address
