from typing import Dict, Optional

from taixiu.models import LeaderboardEntry


class Leaderboard:
    """Cumulative results per stats key within one room.

    Keys are derived from display names, so anyone typing the same name in
    the same room shares the entry. That is a known trust limitation of a
    game without accounts.
    """

    def __init__(self, limit: int = 20):
        self.limit = limit
        self._entries: Dict[str, LeaderboardEntry] = {}

    def ensure(self, stats_key: str, name: str) -> LeaderboardEntry:
        entry = self._entries.get(stats_key)
        if entry is None:
            entry = LeaderboardEntry(name=name)
            self._entries[stats_key] = entry
        else:
            # keep latest name
            entry.name = name
        return entry

    def record(self, stats_key: str, name: str, won: bool, amount: int) -> LeaderboardEntry:
        entry = self.ensure(stats_key, name)
        entry.played += 1
        if won:
            entry.wins += 1
            entry.net += amount
        else:
            entry.losses += 1
            entry.net -= amount
        return entry

    def get(self, stats_key: str) -> Optional[LeaderboardEntry]:
        return self._entries.get(stats_key)

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self):
        ranked = sorted(
            self._entries.values(),
            key=lambda e: (-e.net, -e.wins, -e.played),
        )
        return [e.to_dict() for e in ranked[:self.limit]]
