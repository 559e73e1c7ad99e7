"""Optional prompt sections computed from the user's records.

A brief may decline (``applies`` returns False), find nothing to say
(``build`` returns None) or fail; the context assembler treats all three the
same way and simply omits the section.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date
from typing import Protocol, runtime_checkable

from sbos_assistant.storage.records import RecordKind, RecordStore
from sbos_assistant.tools.summary_tools import build_summary

_DECISION_PATTERNS = [
    re.compile(r"\bshould i\b", re.IGNORECASE),
    re.compile(r"\bdo i\b.*\?", re.IGNORECASE),
    re.compile(r"\bdecide\b", re.IGNORECASE),
    re.compile(r"\bchoose\b", re.IGNORECASE),
    re.compile(r"\bpick\b", re.IGNORECASE),
    re.compile(r"\bgo with\b", re.IGNORECASE),
    re.compile(r"\bhire\b", re.IGNORECASE),
    re.compile(r"\bswitch\b", re.IGNORECASE),
    re.compile(r"\binvest\b", re.IGNORECASE),
    re.compile(r"\bprioritize\b", re.IGNORECASE),
    re.compile(r"\bwhich (one|option)\b", re.IGNORECASE),
    re.compile(r"\bwhat would you recommend\b", re.IGNORECASE),
    re.compile(r"\bbetter to\b", re.IGNORECASE),
    re.compile(r"\bpros and cons\b", re.IGNORECASE),
    re.compile(r"\btradeoff\b", re.IGNORECASE),
    re.compile(r"\bweigh\b.*option", re.IGNORECASE),
]

MAX_DECISION_BRIEF_CHARS = 1600


def is_decision_question(message: str) -> bool:
    return any(p.search(message) for p in _DECISION_PATTERNS)


@runtime_checkable
class ContextBrief(Protocol):
    @property
    def name(self) -> str: ...

    def applies(self, user_message: str) -> bool: ...

    def build(self, user_id: str, today: date) -> str | None: ...


def _top(counter: Counter, n: int = 3) -> list[str]:
    return [item for item, _ in counter.most_common(n)]


class DecisionStyleBrief:
    """Summarizes how the user has made past decisions, for decision-type questions."""

    name = "decision_style"

    def __init__(self, records: RecordStore, *, max_decisions: int = 10):
        self._records = records
        self._max_decisions = max_decisions

    def applies(self, user_message: str) -> bool:
        return is_decision_question(user_message)

    def build(self, user_id: str, today: date) -> str | None:
        decisions = self._records.list(
            user_id,
            RecordKind.DECISION,
            order_by="created_at",
            descending=True,
            limit=self._max_decisions,
        )
        if not decisions:
            return None

        closed = [d for d in decisions if d.get("outcome_recorded_at")]
        open_ = [d for d in decisions if not d.get("outcome_recorded_at")]

        principles: Counter = Counter()
        constraints: Counter = Counter()
        archetypes: Counter = Counter()
        risk_levels: Counter = Counter()
        reversibility: Counter = Counter()
        outcomes: Counter = Counter()
        for decision in decisions:
            derived = decision.get("derived") or {}
            principles.update(derived.get("principles") or [])
            constraints.update(derived.get("constraints") or [])
            if derived.get("archetype"):
                archetypes[derived["archetype"]] += 1
            if derived.get("risk_level"):
                risk_levels[derived["risk_level"]] += 1
            if derived.get("reversibility"):
                reversibility[derived["reversibility"]] += 1
            if decision.get("outcome"):
                outcomes[decision["outcome"]] += 1

        lines = [f"## Decision Style Brief (based on {len(decisions)} past decisions)"]
        if principles:
            lines.append(f"**Common principles:** {', '.join(_top(principles))}")
        if constraints:
            lines.append(f"**Typical constraints considered:** {', '.join(_top(constraints))}")
        if archetypes:
            lines.append(f"**Common decision types:** {', '.join(_top(archetypes))}")

        risk: list[str] = []
        if risk_levels:
            risk.append(f"typically {_top(risk_levels, 1)[0]} risk")
        if reversibility:
            risk.append(f"{_top(reversibility, 1)[0].replace('_', ' ')} decisions")
        if risk:
            lines.append(f"**Risk profile:** Tends toward {', '.join(risk)}")

        if closed:
            success_rate = round(outcomes["success"] / len(closed) * 100)
            mixed_rate = round(outcomes["mixed"] / len(closed) * 100)
            lines.append(f"**Historical outcomes ({len(closed)} reviewed):** {success_rate}% success, {mixed_rate}% mixed")
            worked = []
            for d in closed:
                archetype = (d.get("derived") or {}).get("archetype")
                if d.get("outcome") == "success" and archetype and archetype not in worked:
                    worked.append(archetype)
            if worked:
                lines.append(f"**What typically works:** {', '.join(worked[:2])} decisions")

        if open_:
            pending = open_[0]
            summary = (pending.get("derived") or {}).get("canonical_summary") or (pending.get("decision") or "")[:100]
            lines.append(f"**Current pending:** {summary}")

        brief = "\n".join(lines)
        if len(brief) > MAX_DECISION_BRIEF_CHARS:
            brief = brief[:MAX_DECISION_BRIEF_CHARS] + "..."
        return brief


class SystemStatusBrief:
    """A one-glance snapshot of the user's system so the model can answer without a tool call."""

    name = "system_status"

    def __init__(self, records: RecordStore):
        self._records = records

    def applies(self, user_message: str) -> bool:
        return True

    def build(self, user_id: str, today: date) -> str | None:
        s = build_summary(self._records, user_id, today.isoformat())
        if not any(s.values()):
            return None
        return (
            "SYSTEM STATUS:\n"
            f"- Active ventures: {s['activeVentures']} of {s['ventures']}\n"
            f"- Active projects: {s['activeProjects']} of {s['projects']}\n"
            f"- Open tasks: {s['activeTasks']} ({s['todayTasks']} for today, {s['overdueTasks']} overdue)\n"
            f"- Unclarified captures: {s['unclarifiedCaptures']}"
        )
