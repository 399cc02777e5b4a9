"""Homepage counters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from backend.storage.documents import DocumentStore


@dataclass
class StatsService:
    store: DocumentStore

    def counts(self) -> Dict[str, int]:
        return {
            "totalUsers": self.store.collection("users").estimated_count(),
            "totalClasses": self.store.collection("classes").estimated_count(),
            "totalEnrollments": self.store.collection("enrollments").estimated_count(),
        }
