"""
Relatórios periódicos: resumo diário e tarefas abertas por responsável.

As funções build_* são puras (recebem as issues e o horário) e as
funções generate_* buscam no Linear e entregam no Discord.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .constants import (
    COLORS,
    DISCORD_MAX_EMBEDS,
    PRIORITY_ISSUES_LIMIT,
    PRIORITY_TITLE_MAX_CHARS,
    RECENT_ISSUES_LIMIT,
    RECENT_TITLE_MAX_CHARS,
    UNASSIGNED,
    USER_TASK_TITLE_MAX_CHARS,
    USER_TASKS_LIMIT,
    USERNAME_DIGEST,
    USERNAME_TASK_REPORT,
)
from .formatters import build_embed, build_field, build_payload
from .models import Issue
from .utils import (
    format_timestamp,
    get_priority_emoji,
    get_state_emoji,
    get_status_priority,
    start_of_day_utc,
    truncate,
    utc_now,
)

logger = logging.getLogger(__name__)

DIGEST_TITLE = "📊 Linear Daily Digest"
NO_ISSUES_TEXT = "No open issues found. Great job keeping the backlog clean! 🎉"

Sender = Callable[[Dict[str, Any]], Any]


@dataclass
class StatusGroup:
    name: str
    type: str
    color: str = ""
    issues: List[Issue] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.issues)


@dataclass
class AssigneeGroup:
    name: str
    issues: List[Issue] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.issues)


def assignee_name(issue: Issue) -> str:
    if issue.assignee is None:
        return UNASSIGNED
    return issue.assignee.label


def group_by_status(issues: Iterable[Issue]) -> List[StatusGroup]:
    groups: Dict[str, StatusGroup] = {}
    for issue in issues:
        key = issue.state.name
        if key not in groups:
            groups[key] = StatusGroup(name=issue.state.name, type=issue.state.type, color=issue.state.color)
        groups[key].issues.append(issue)
    # sorted é estável: dentro do mesmo tipo mantém a ordem de chegada
    return sorted(groups.values(), key=lambda g: get_status_priority(g.type))


def group_by_assignee(issues: Iterable[Issue]) -> List[AssigneeGroup]:
    groups: Dict[str, AssigneeGroup] = {}
    for issue in issues:
        name = assignee_name(issue)
        if name not in groups:
            groups[name] = AssigneeGroup(name=name)
        groups[name].issues.append(issue)
    # "Unassigned" sempre por último, independente da contagem
    return sorted(groups.values(), key=lambda g: (g.name == UNASSIGNED, -g.count))


def count_priorities(issues: Iterable[Issue]) -> Dict[str, int]:
    counts = {"urgent": 0, "high": 0}
    for issue in issues:
        if issue.priority == 1:
            counts["urgent"] += 1
        elif issue.priority == 2:
            counts["high"] += 1
    return counts


def _assignee_emoji(name: str) -> str:
    return "❓" if name == UNASSIGNED else "👤"


# ---------- Resumo diário ----------

def build_no_issues_payload(now: Optional[datetime] = None) -> Dict[str, Any]:
    embed = build_embed(
        title=DIGEST_TITLE,
        description=NO_ISSUES_TEXT,
        color=COLORS["green"],
        timestamp=format_timestamp(now),
        footer="Linear Daily Digest",
    )
    return build_payload([embed], USERNAME_DIGEST)


def build_summary_embed(
    issues: Sequence[Issue],
    by_status: Sequence[StatusGroup],
    by_assignee: Sequence[AssigneeGroup],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    counts = count_priorities(issues)

    status_lines = [f"{get_state_emoji(g.type)} **{g.name}**: {g.count}" for g in by_status]
    assignee_lines = [f"{_assignee_emoji(g.name)} **{g.name}**: {g.count}" for g in by_assignee]

    priority_alerts = []
    if counts["urgent"] > 0:
        priority_alerts.append(f"🔴 **{counts['urgent']} Urgent**")
    if counts["high"] > 0:
        priority_alerts.append(f"🟠 **{counts['high']} High Priority**")

    summary_parts = [f"**{len(issues)}** open issues across your workspace"]
    if priority_alerts:
        summary_parts.append(" | ".join(priority_alerts))

    return build_embed(
        title=DIGEST_TITLE,
        description="\n".join(summary_parts),
        color=COLORS["blue"],
        timestamp=format_timestamp(now),
        footer=f"Total: {len(issues)} open issues • Generated at",
        fields=[
            build_field("📋 By Status", "\n".join(status_lines), inline=True),
            build_field("👥 By Assignee", "\n".join(assignee_lines), inline=True),
        ],
    )


def build_priority_embed(issues: Sequence[Issue]) -> Optional[Dict[str, Any]]:
    counts = count_priorities(issues)
    if counts["urgent"] == 0 and counts["high"] == 0:
        return None

    lines = []
    for issue in issues:
        if len(lines) >= PRIORITY_ISSUES_LIMIT:
            break
        if issue.priority > 2:
            continue
        assignee = issue.assignee.name if issue.assignee is not None else UNASSIGNED
        lines.append(
            f"{get_priority_emoji(issue.priority)} [**{issue.identifier}**]({issue.url}) - "
            f"{truncate(issue.title, PRIORITY_TITLE_MAX_CHARS)} ({assignee})"
        )

    if not lines:
        return None
    return build_embed(title="🚨 Priority Issues", description="\n".join(lines), color=COLORS["red"])


def build_recent_embed(issues: Sequence[Issue], now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    today = start_of_day_utc(now)
    lines = []
    for issue in issues:
        if len(lines) >= RECENT_ISSUES_LIMIT:
            break
        if issue.updated_at is not None and issue.updated_at > today:
            lines.append(
                f"• [**{issue.identifier}**]({issue.url}) - {truncate(issue.title, RECENT_TITLE_MAX_CHARS)}"
            )

    if not lines:
        return None
    return build_embed(title="🔄 Recently Updated", description="\n".join(lines), color=COLORS["yellow"])


def build_digest_payload(issues: Sequence[Issue], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Monta a mensagem do resumo diário (ou a mensagem de 'nenhuma issue')."""
    if not issues:
        return build_no_issues_payload(now)

    now = now or utc_now()
    by_status = group_by_status(issues)
    by_assignee = group_by_assignee(issues)

    embeds = [build_summary_embed(issues, by_status, by_assignee, now)]
    for extra in (build_priority_embed(issues), build_recent_embed(issues, now)):
        if extra is not None:
            embeds.append(extra)
    return build_payload(embeds, USERNAME_DIGEST)


# ---------- Relatório por responsável ----------

def build_user_embed(group: AssigneeGroup) -> Dict[str, Any]:
    lines = []
    for issue in group.issues[:USER_TASKS_LIMIT]:
        lines.append(
            f"{get_priority_emoji(issue.priority)} [{issue.identifier}]({issue.url}) - "
            f"{truncate(issue.title, USER_TASK_TITLE_MAX_CHARS)}"
        )
    if group.count > USER_TASKS_LIMIT:
        lines.append(f"*... and {group.count - USER_TASKS_LIMIT} more*")

    return build_embed(
        title=f"{_assignee_emoji(group.name)} {group.name} ({group.count} tasks)",
        description="\n".join(lines),
        color=COLORS["gray"],
    )


def build_user_report_embeds(issues: Sequence[Issue], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    by_assignee = group_by_assignee(issues)
    header = build_embed(
        title="📋 Open Tasks by User",
        description=f"**{len(issues)}** open tasks across **{len(by_assignee)}** assignees",
        color=COLORS["blue"],
        timestamp=format_timestamp(now),
    )
    return [header] + [build_user_embed(group) for group in by_assignee]


def batch_embeds(embeds: Sequence[Dict[str, Any]], size: int = DISCORD_MAX_EMBEDS) -> List[List[Dict[str, Any]]]:
    return [list(embeds[i:i + size]) for i in range(0, len(embeds), size)]


def send_in_batches(
    embeds: Sequence[Dict[str, Any]],
    send: Sender,
    username: str,
    delay_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Entrega os embeds em lotes de até 10 por mensagem, em sequência,
    dormindo `delay_seconds` entre entregas consecutivas.
    Retorna o número de mensagens enviadas.
    """
    batches = batch_embeds(embeds)
    for index, batch in enumerate(batches):
        if index > 0:
            sleep(delay_seconds)
        send(build_payload(batch, username))
    return len(batches)


# ---------- Orquestração (Linear -> Discord) ----------

def generate_and_send_report(client, send: Sender, now: Optional[datetime] = None) -> int:
    logger.info("Buscando issues no Linear...")
    issues = client.fetch_all_open_issues()
    logger.info("%d issues abertas encontradas", len(issues))

    send(build_digest_payload(issues, now))
    return len(issues)


def generate_user_tasks_report(
    client,
    send: Sender,
    delay_seconds: float,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    logger.info("Buscando issues para o relatório por usuário...")
    issues = client.fetch_all_open_issues()
    logger.info("%d issues abertas encontradas", len(issues))

    if not issues:
        send(build_no_issues_payload(now))
        return 1

    embeds = build_user_report_embeds(issues, now)
    return send_in_batches(embeds, send, USERNAME_TASK_REPORT, delay_seconds, sleep)
