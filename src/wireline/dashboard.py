"""Status cards summarising the user base for the admin dashboard."""

from pathlib import Path
from typing import Dict, List, Literal, Optional

from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

Tone = Literal["red", "yellow", "green", "white"]

TONE_CLASSES: Dict[str, Dict[str, str]] = {
    "red": {"border": "border-tag-red", "bg": "bg-tag-red/10", "text": "text-tag-red"},
    "yellow": {
        "border": "border-tag-yellow",
        "bg": "bg-tag-yellow/10",
        "text": "text-tag-yellow",
    },
    "green": {
        "border": "border-tag-green",
        "bg": "bg-tag-green/10",
        "text": "text-tag-green",
    },
    "white": {"border": "border-gray-300", "bg": "bg-tag-white/50", "text": "text-gray-700"},
}


class StatusCard(BaseModel):
    """A single metric tile: a title, a count and a colour tone."""

    title: str
    count: int
    change: Optional[str] = None
    icon: str
    type: Tone


def _template_environment() -> Jinja2Templates:
    base_dir = Path(__file__).resolve().parent
    return Jinja2Templates(directory=str(base_dir / "templates"))


templates = _template_environment()


def render_status_card(card: StatusCard) -> str:
    return templates.get_template("status_card.html").render(
        card=card, classes=TONE_CLASSES[card.type]
    )


def _share(part: int, total: int) -> str:
    if total == 0:
        return "0% of accounts"
    return f"{round(100 * part / total)}% of accounts"


def build_status_cards(counts: Dict[str, int]) -> List[StatusCard]:
    """Turn the totals from ``UserRepository.count_users`` into cards."""
    total = counts.get("total", 0)
    active = counts.get("active", 0)
    scheduled = counts.get("scheduled", 0)
    admins = counts.get("admins", 0)
    return [
        StatusCard(title="Total Users", count=total, icon="fas fa-users", type="white"),
        StatusCard(
            title="Active Users",
            count=active,
            change=_share(active, total),
            icon="fas fa-user-check",
            type="green",
        ),
        StatusCard(
            title="Administrators",
            count=admins,
            change=_share(admins, total),
            icon="fas fa-user-shield",
            type="yellow",
        ),
        StatusCard(
            title="Scheduled for Deletion",
            count=scheduled,
            change=_share(scheduled, total),
            icon="fas fa-user-clock",
            type="red",
        ),
    ]
