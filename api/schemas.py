"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, ConfigDict, Field


# Game schemas
class SelectRequest(BaseModel):
    """Request to select a grid slot."""

    row: int = Field(..., ge=0, le=2, description="Grid row")
    col: int = Field(..., ge=0, le=2, description="Grid column")


class PredictRequest(BaseModel):
    """Request to predict the next card."""

    higher: bool = Field(..., description="True for higher, False for lower")


class CardResponse(BaseModel):
    """Card representation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    rank: str
    suit: str
    symbol: str
    value: int


class SlotResponse(BaseModel):
    """Grid slot representation."""

    row: int
    col: int
    card: CardResponse
    active: bool
    is_selected: bool


class ProbabilitiesResponse(BaseModel):
    """Chance per rank band that the next card falls in it, in percent."""

    LOW: float
    MID: float
    HIGH: float


class PredictionResultResponse(BaseModel):
    """The last resolved prediction."""

    row: int
    col: int
    previous_card: CardResponse
    drawn_card: CardResponse
    is_higher: bool
    correct: bool


class GameStateResponse(BaseModel):
    """Current game state."""

    game_id: str
    phase: str
    outcome: str | None
    score: int | None
    deck_remaining: int
    active_count: int
    slots: list[SlotResponse]
    used_counts: dict[str, int]
    probabilities: ProbabilitiesResponse
    last_result: PredictionResultResponse | None
    can_select: bool
    can_predict: bool
    can_pause: bool
    can_resume: bool


class SessionResponse(BaseModel):
    """A newly issued session token."""

    session_id: str


class SessionStatsResponse(BaseModel):
    """Play history of one session."""

    model_config = ConfigDict(from_attributes=True)

    created_at: int
    last_activity: int
    games_started: int
    games_won: int
    best_score: int | None


# Leaderboard schemas
class LeaderboardEntryResponse(BaseModel):
    """One ranked score."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    score: int
    date: str


class LeaderboardResponse(BaseModel):
    """The ranked leaderboard."""

    entries: list[LeaderboardEntryResponse]
    max_entries: int


class ScoreSubmitRequest(BaseModel):
    """Request to record the session's finished game."""

    name: str = Field(default="", max_length=32, description="Player name")


class ScoreSubmitResponse(BaseModel):
    """Result of recording a score."""

    score: int
    rank: int | None = Field(description="Zero-based position, or null if not ranked")
    entries: list[LeaderboardEntryResponse]
