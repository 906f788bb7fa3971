"""
Persistence collaborator boundary.

The analytics engine only reads athlete data. Profiles are required;
session and injury histories may be empty.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Dict, List, Iterable
import asyncio
import logging

from athlete_core.errors import NotFoundError
from athlete_core.models import AthleteProfile, TrainingSessionRecord, InjuryRecord


logger = logging.getLogger(__name__)


class AthleteRepository(ABC):
    """Read-only source of athlete profiles and history."""

    @abstractmethod
    async def fetch_athlete(self, athlete_id: str) -> AthleteProfile:
        """Return the athlete's profile or raise NotFoundError."""

    @abstractmethod
    async def fetch_sessions(
        self,
        athlete_id: str,
        since: Optional[date] = None
    ) -> List[TrainingSessionRecord]:
        """Sessions on or after ``since``, oldest first."""

    @abstractmethod
    async def fetch_injuries(
        self,
        athlete_id: str,
        since: Optional[date] = None
    ) -> List[InjuryRecord]:
        """Injuries on or after ``since``; undated injuries are always included."""


class InMemoryAthleteRepository(AthleteRepository):
    """
    Dictionary-backed repository for tests, simulations and the CLI.

    Args:
        athletes: Profiles to preload
        sessions: Session history by athlete id
        injuries: Injury history by athlete id
        delay_seconds: Artificial latency added to history fetches
    """

    def __init__(
        self,
        athletes: Optional[Iterable[AthleteProfile]] = None,
        sessions: Optional[Dict[str, List[TrainingSessionRecord]]] = None,
        injuries: Optional[Dict[str, List[InjuryRecord]]] = None,
        delay_seconds: float = 0.0
    ):
        self._athletes: Dict[str, AthleteProfile] = {}
        self._sessions: Dict[str, List[TrainingSessionRecord]] = {}
        self._injuries: Dict[str, List[InjuryRecord]] = {}
        self.delay_seconds = delay_seconds

        for athlete in athletes or []:
            self.add_athlete(athlete)
        for athlete_id, records in (sessions or {}).items():
            self.add_sessions(athlete_id, records)
        for athlete_id, records in (injuries or {}).items():
            self.add_injuries(athlete_id, records)

    def add_athlete(self, profile: AthleteProfile) -> None:
        self._athletes[profile.athlete_id] = profile

    def add_sessions(self, athlete_id: str, records: Iterable[TrainingSessionRecord]) -> None:
        history = self._sessions.setdefault(athlete_id, [])
        history.extend(records)
        history.sort(key=lambda s: s.session_date)

    def add_injuries(self, athlete_id: str, records: Iterable[InjuryRecord]) -> None:
        self._injuries.setdefault(athlete_id, []).extend(records)

    def athlete_ids(self) -> List[str]:
        return list(self._athletes)

    async def _simulate_latency(self) -> None:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

    async def fetch_athlete(self, athlete_id: str) -> AthleteProfile:
        try:
            return self._athletes[athlete_id]
        except KeyError:
            raise NotFoundError(f"Athlete {athlete_id} not found")

    async def fetch_sessions(
        self,
        athlete_id: str,
        since: Optional[date] = None
    ) -> List[TrainingSessionRecord]:
        await self._simulate_latency()
        sessions = self._sessions.get(athlete_id, [])
        if since is None:
            return list(sessions)
        return [s for s in sessions if s.session_date >= since]

    async def fetch_injuries(
        self,
        athlete_id: str,
        since: Optional[date] = None
    ) -> List[InjuryRecord]:
        await self._simulate_latency()
        injuries = self._injuries.get(athlete_id, [])
        if since is None:
            return list(injuries)
        return [i for i in injuries if i.injury_date is None or i.injury_date >= since]
