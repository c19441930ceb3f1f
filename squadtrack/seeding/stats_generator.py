"""
Seedable generator of plausible match results and per-player stats.

Used for demo data and test fixtures only; nothing in the request path
calls it. Every draw goes through one ``random.Random`` so the same seed
reproduces the same season.

The squad model is the seven-a-side demo squad:
ST, CM, CM, CB, RW, RB, CM.
"""
import random
from datetime import date, timedelta
from typing import List, Optional, Tuple

SQUAD_POSITIONS = ("ST", "CM", "CM", "CB", "RW", "RB", "CM")

ATTACKERS = (0, 4)  # ST, RW
MIDFIELDERS = (1, 2, 6)
DEFENDERS = (3, 5)  # CB, RB

OPPONENTS = (
    "Arsenal", "Chelsea", "Manchester City", "Manchester United",
    "Tottenham", "Newcastle", "Aston Villa", "Brighton", "West Ham",
    "Wolves", "Fulham", "Crystal Palace", "Brentford", "Bournemouth",
    "Everton", "Nottingham Forest", "Burnley", "Luton Town", "Sheffield United",
)

FEEDBACK_OPTIONS = (
    "Excellent technical ability shown today, maintain this standard.",
    "Outstanding work rate and intelligent positioning throughout the match.",
    "Good decision-making under pressure, keep building on it.",
    "Strong first touch and ball control in tight areas.",
    "Dominant defensive display, kept their attackers quiet all game.",
    "Clinical finishing and movement, created several quality chances.",
    "Need more communication with the back line on set pieces.",
    "Track back quicker when we lose the ball in midfield.",
    "Work on your weak foot; you avoided it in good positions.",
    "Be braver on the ball and look for the forward pass.",
)

WIN_PROBABILITY = 0.75
DRAW_PROBABILITY = 0.15
MAX_GOALS_PER_PLAYER = 4
MAX_ASSISTS_PER_PLAYER = 5


class MatchStatsGenerator:
    """Random match data from a fixed seed."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = random.Random(seed)

    # ========================================================================
    # Matches
    # ========================================================================

    def match_result(self) -> Tuple[int, int]:
        """(team_score, opponent_score): 75% wins, 15% draws, 10% losses."""
        roll = self.rng.random()
        if roll < WIN_PROBABILITY:
            return self.rng.randint(3, 6), self.rng.randint(0, 2)
        if roll < WIN_PROBABILITY + DRAW_PROBABILITY:
            score = self.rng.randint(2, 4)
            return score, score
        return self.rng.randint(0, 2), self.rng.randint(3, 6)

    def fixture_dates(self, start: date, end: date, count: int) -> List[date]:
        """``count`` dates spread evenly over [start, end], both ends included."""
        if count <= 0:
            return []
        if count == 1:
            return [start]
        total_days = (end - start).days
        return [start + timedelta(days=(i * total_days) // (count - 1)) for i in range(count)]

    def opponent(self) -> str:
        return self.rng.choice(OPPONENTS)

    def feedback(self) -> str:
        return self.rng.choice(FEEDBACK_OPTIONS)

    # ========================================================================
    # Player stats
    # ========================================================================

    def squad_stats(self, team_score: int, opponent_score: int) -> List[dict]:
        """Stats for each squad member (ordered as SQUAD_POSITIONS) consistent with the scoreline."""
        players = [
            {
                "minutes_played": self.rng.randint(75, 90),
                "goals": 0,
                "assists": 0,
                "tackles": 0,
                "interceptions": 0,
                "saves": 0,
                "chances_created": 0,
                "coach_rating": 75,
            }
            for _ in SQUAD_POSITIONS
        ]
        self._distribute_goals(players, team_score)
        self._distribute_assists(players, team_score)
        self._distribute_chances(players, team_score, opponent_score)
        self._defensive_stats(players, team_score, opponent_score)
        self._coach_ratings(players, team_score, opponent_score)
        return players

    def _distribute_goals(self, players: List[dict], team_score: int) -> None:
        remaining = min(team_score, MAX_GOALS_PER_PLAYER * len(players))
        while remaining > 0:
            roll = self.rng.random()
            if roll < 0.85:
                scorer = self.rng.choice(ATTACKERS)
            elif roll < 0.98:
                scorer = self.rng.choice(MIDFIELDERS)
            else:
                scorer = self.rng.randrange(len(players))
            if players[scorer]["goals"] < MAX_GOALS_PER_PLAYER:
                players[scorer]["goals"] += 1
                remaining -= 1

    def _distribute_assists(self, players: List[dict], team_score: int) -> None:
        potential = int(team_score * 1.25) + self.rng.randint(0, 1)
        for _ in range(potential):
            roll = self.rng.random()
            if roll < 0.65:
                assister = self.rng.choice(MIDFIELDERS)
            elif roll < 0.95:
                assister = 4
            else:
                assister = 0
            if players[assister]["assists"] < MAX_ASSISTS_PER_PLAYER:
                players[assister]["assists"] += 1

    def _distribute_chances(self, players: List[dict], team_score: int, opponent_score: int) -> None:
        intensity = team_score + opponent_score
        total = max(10, team_score * 3 + self.rng.randint(0, 5) + intensity)
        for _ in range(total):
            roll = self.rng.random()
            if roll < 0.35:
                creator = self.rng.choice(MIDFIELDERS)
            elif roll < 0.55:
                creator = 4
            elif roll < 0.70:
                creator = 0
            elif roll < 0.85:
                creator = 5
            else:
                creator = self.rng.randrange(len(players))
            players[creator]["chances_created"] += 1

        for index in ATTACKERS:
            if players[index]["chances_created"] < 5:
                players[index]["chances_created"] = self.rng.randint(5, 7)
        playmaker = self.rng.choice(MIDFIELDERS)
        if players[playmaker]["chances_created"] < 4:
            players[playmaker]["chances_created"] = self.rng.randint(4, 6)

    def _defensive_stats(self, players: List[dict], team_score: int, opponent_score: int) -> None:
        pressure = 2.2 if opponent_score >= team_score else 1.7

        for index in DEFENDERS:
            players[index]["tackles"] = int((self.rng.random() * 6 + 4) * pressure)
            players[index]["interceptions"] = int((self.rng.random() * 5 + 2) * pressure)
            if self.rng.random() < 0.35:
                players[index]["chances_created"] = self.rng.randint(1, 6)
            if self.rng.random() < 0.35:
                players[index]["assists"] = 1

        for index in MIDFIELDERS:
            players[index]["tackles"] = int((self.rng.random() * 6 + 3) * pressure)
            players[index]["interceptions"] = int((self.rng.random() * 5 + 2) * pressure)
            if players[index]["chances_created"] < 2:
                players[index]["chances_created"] = self.rng.randint(2, 5)

        for index in ATTACKERS:
            players[index]["tackles"] = int((self.rng.random() * 5 + 1) * pressure)
            players[index]["interceptions"] = int((self.rng.random() * 5 + 1) * pressure)

    def _coach_ratings(self, players: List[dict], team_score: int, opponent_score: int) -> None:
        goal_difference = team_score - opponent_score
        for player in players:
            rating = 82
            if goal_difference > 0:
                rating += min(10, goal_difference * 2)
            elif goal_difference == 0:
                rating += self.rng.randint(-4, 3)
            else:
                rating -= min(15, abs(goal_difference) * 3)

            rating += player["goals"] * 3 + player["assists"] * 2
            if player["chances_created"] > 3:
                rating += min(5, player["chances_created"] - 3)
            if player["tackles"] > 5:
                rating += 3
            if player["interceptions"] > 3:
                rating += 2

            contributions = sum(
                1 for key in ("goals", "assists", "chances_created", "tackles", "interceptions") if player[key] > 0
            )
            if contributions >= 3:
                rating += 3

            if player["minutes_played"] >= 85:
                rating += 2
            elif player["minutes_played"] < 80:
                rating -= 3

            rating += self.rng.randint(-3, 2)
            player["coach_rating"] = max(75, min(95, rating))
