# listening_party/tally.py
# Vote ledger: toggle votes, rank songs, and pick the winner each tally cycle.

from __future__ import annotations

import logging
import random

logger = logging.getLogger(__name__)


def vote_count(entry: dict) -> int:
    return len(entry["votes"])


class TallyEngine:
    def __init__(self, registry, emitter, rng: random.Random | None = None):
        self.registry = registry
        self.emitter = emitter
        self.rng = rng or random.Random()

    def cast_vote(self, code, user_id, song_info: dict) -> None:
        """Toggle `user_id`'s vote for the song and broadcast the new ranking.

        The entry is created from the song's metadata on first vote and
        dropped once its last voter withdraws.
        """
        s = self.registry.require(code)
        uri = song_info["uri"]
        votes = s["votes"]
        entry = votes.get(uri)

        if entry is None:
            votes[uri] = {
                "votes": [user_id],
                "name": song_info.get("name"),
                "artists": song_info.get("artist"),
                "image": song_info.get("image"),
            }
        elif user_id in entry["votes"]:
            entry["votes"].remove(user_id)
            if not entry["votes"]:
                del votes[uri]
        else:
            entry["votes"].append(user_id)
        logger.debug("Vote toggled by %s for %s in %s", user_id, uri, code)

        self.broadcast_votes(code)

    def rank(self, code) -> list[dict]:
        """Songs by vote count, highest first; ties keep ledger order."""
        s = self.registry.require(code)
        ranked = [
            {
                "uri": uri,
                "votes": list(entry["votes"]),
                "name": entry["name"],
                "artists": entry["artists"],
                "image": entry["image"],
            }
            for uri, entry in s["votes"].items()
        ]
        # list.sort is stable
        ranked.sort(key=vote_count, reverse=True)
        return ranked

    def broadcast_votes(self, code) -> None:
        self.emitter.emit("updateVoteList", {"votes": self.rank(code)}, room=code)

    def advance(self, code) -> dict | None:
        """Close one tally cycle: announce and remove the top song."""
        s = self.registry.get(code)
        if s is None:
            return None

        if not s["votes"]:
            self.emitter.emit("songVoted", {"songInfo": None}, room=code)
            self.emitter.emit("updateVoteList", {"votes": []}, room=code)
            return None

        ranked = self.rank(code)
        top = ranked.pop(0)
        del s["votes"][top["uri"]]
        logger.info("Session %s picked %s (%d votes)", code, top["uri"], len(top["votes"]))

        self.emitter.emit("songVoted", {"songInfo": top}, room=code)
        self.emitter.emit("updateVoteList", {"votes": ranked}, room=code)
        return top

    def top_by_raw_count(self, code) -> str | None:
        s = self.registry.require(code)
        counts = {uri: vote_count(entry) for uri, entry in s["votes"].items()}
        best = max(counts.values(), default=0)
        if best == 0:
            return None
        return self.rng.choice([uri for uri, n in counts.items() if n == best])
