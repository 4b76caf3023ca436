"""
Registros de domínio (Linear) e o envelope de webhook como união fechada.

Todos os registros são imutáveis e vivem apenas durante a requisição.
Os parsers validam os tipos JSON de cada campo e levantam PayloadError
quando o bloco não corresponde ao tipo esperado.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .utils import parse_timestamp


class PayloadError(ValueError):
    """Bloco `data` do webhook (ou nó da API) com formato inválido."""


class EnvelopeError(PayloadError):
    """Envelope do webhook inválido (não é um objeto JSON ou campos com tipo errado)."""


@dataclass(frozen=True)
class State:
    id: str = ""
    name: str = ""
    color: str = ""
    type: str = ""


@dataclass(frozen=True)
class User:
    id: str = ""
    name: str = ""
    display_name: str = ""
    email: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.name


@dataclass(frozen=True)
class Team:
    id: str = ""
    name: str = ""
    key: str = ""


@dataclass(frozen=True)
class Label:
    id: str = ""
    name: str = ""
    color: str = ""


@dataclass(frozen=True)
class Issue:
    id: str = ""
    identifier: str = ""
    title: str = ""
    description: str = ""
    priority: int = 0
    priority_label: str = ""
    url: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    state: State = field(default_factory=State)
    assignee: Optional[User] = None
    team: Team = field(default_factory=Team)
    labels: Tuple[Label, ...] = ()


@dataclass(frozen=True)
class WebhookIssue:
    id: str = ""
    identifier: str = ""
    title: str = ""
    description: str = ""
    priority: int = 0
    priority_label: str = ""
    state: Optional[State] = None
    assignee: Optional[User] = None
    team: Optional[Team] = None
    labels: Tuple[Label, ...] = ()
    url: str = ""


@dataclass(frozen=True)
class WebhookComment:
    id: str = ""
    body: str = ""
    issue: Optional[WebhookIssue] = None
    user: Optional[User] = None
    created_at: str = ""
    url: str = ""


@dataclass(frozen=True)
class WebhookProject:
    id: str = ""
    name: str = ""
    description: str = ""
    state: str = ""
    url: str = ""


# ---------- Envelope (união fechada) ----------

@dataclass(frozen=True)
class IssueEvent:
    action: str
    issue: WebhookIssue
    actor: Optional[User] = None


@dataclass(frozen=True)
class CommentEvent:
    action: str
    comment: WebhookComment
    actor: Optional[User] = None


@dataclass(frozen=True)
class ProjectEvent:
    action: str
    project: WebhookProject
    actor: Optional[User] = None


@dataclass(frozen=True)
class UnknownEvent:
    """Tipo de evento que o relay não encaminha (ex.: Reaction, Cycle)."""

    type: str
    action: str
    actor: Optional[User] = None


WebhookEvent = Union[IssueEvent, CommentEvent, ProjectEvent, UnknownEvent]


# ---------- Helpers de parsing ----------

def _expect_object(value: Any, what: str, error=PayloadError) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise error(f"failed to parse {what}: expected object, got {type(value).__name__}")
    return value


def _str(data: Dict[str, Any], key: str, what: str, error=PayloadError) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise error(f"failed to parse {what}: field '{key}' must be a string")
    return value


def _int(data: Dict[str, Any], key: str, what: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    # bool é subclasse de int, mas não é um número válido aqui
    if isinstance(value, bool) or not isinstance(value, int):
        raise PayloadError(f"failed to parse {what}: field '{key}' must be an integer")
    return value


def _timestamp(data: Dict[str, Any], key: str, what: str) -> Optional[datetime]:
    raw = _str(data, key, what)
    try:
        return parse_timestamp(raw)
    except ValueError as exc:
        raise PayloadError(f"failed to parse {what}: field '{key}' is not a timestamp ({exc})") from exc


def _optional_object(data: Dict[str, Any], key: str, what: str) -> Optional[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    return _expect_object(value, f"{what}.{key}")


def _list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadError(f"failed to parse {what}: expected list")
    return value


def parse_state(data: Dict[str, Any], what: str = "state") -> State:
    data = _expect_object(data, what)
    return State(
        id=_str(data, "id", what),
        name=_str(data, "name", what),
        color=_str(data, "color", what),
        type=_str(data, "type", what),
    )


def parse_user(data: Dict[str, Any], what: str = "user", error=PayloadError) -> User:
    data = _expect_object(data, what, error)
    return User(
        id=_str(data, "id", what, error),
        name=_str(data, "name", what, error),
        display_name=_str(data, "displayName", what, error),
        email=_str(data, "email", what, error),
    )


def parse_team(data: Dict[str, Any], what: str = "team") -> Team:
    data = _expect_object(data, what)
    return Team(
        id=_str(data, "id", what),
        name=_str(data, "name", what),
        key=_str(data, "key", what),
    )


def parse_label(data: Dict[str, Any], what: str = "label") -> Label:
    data = _expect_object(data, what)
    return Label(
        id=_str(data, "id", what),
        name=_str(data, "name", what),
        color=_str(data, "color", what),
    )


def parse_issue(data: Dict[str, Any]) -> Issue:
    """Nó `issues.nodes[]` retornado pela API GraphQL."""
    what = "issue"
    data = _expect_object(data, what)
    state = _optional_object(data, "state", what)
    assignee = _optional_object(data, "assignee", what)
    team = _optional_object(data, "team", what)
    # Na API os labels vêm como conexão: {"nodes": [...]}
    labels_conn = _optional_object(data, "labels", what) or {}
    labels = _list(labels_conn.get("nodes"), f"{what}.labels.nodes")
    return Issue(
        id=_str(data, "id", what),
        identifier=_str(data, "identifier", what),
        title=_str(data, "title", what),
        description=_str(data, "description", what),
        priority=_int(data, "priority", what),
        priority_label=_str(data, "priorityLabel", what),
        url=_str(data, "url", what),
        created_at=_timestamp(data, "createdAt", what),
        updated_at=_timestamp(data, "updatedAt", what),
        state=parse_state(state) if state is not None else State(),
        assignee=parse_user(assignee, "issue.assignee") if assignee is not None else None,
        team=parse_team(team) if team is not None else Team(),
        labels=tuple(parse_label(item) for item in labels),
    )


def parse_webhook_issue(data: Dict[str, Any], what: str = "issue data") -> WebhookIssue:
    data = _expect_object(data, what)
    state = _optional_object(data, "state", what)
    assignee = _optional_object(data, "assignee", what)
    team = _optional_object(data, "team", what)
    return WebhookIssue(
        id=_str(data, "id", what),
        identifier=_str(data, "identifier", what),
        title=_str(data, "title", what),
        description=_str(data, "description", what),
        priority=_int(data, "priority", what),
        priority_label=_str(data, "priorityLabel", what),
        state=parse_state(state) if state is not None else None,
        assignee=parse_user(assignee, "issue.assignee") if assignee is not None else None,
        team=parse_team(team) if team is not None else None,
        labels=tuple(parse_label(item) for item in _list(data.get("labels"), f"{what}.labels")),
        url=_str(data, "url", what),
    )


def parse_webhook_comment(data: Dict[str, Any]) -> WebhookComment:
    what = "comment data"
    data = _expect_object(data, what)
    issue = _optional_object(data, "issue", what)
    user = _optional_object(data, "user", what)
    return WebhookComment(
        id=_str(data, "id", what),
        body=_str(data, "body", what),
        issue=parse_webhook_issue(issue, "comment.issue") if issue is not None else None,
        user=parse_user(user, "comment.user") if user is not None else None,
        created_at=_str(data, "createdAt", what),
        url=_str(data, "url", what),
    )


def parse_webhook_project(data: Dict[str, Any]) -> WebhookProject:
    what = "project data"
    data = _expect_object(data, what)
    return WebhookProject(
        id=_str(data, "id", what),
        name=_str(data, "name", what),
        description=_str(data, "description", what),
        state=_str(data, "state", what),
        url=_str(data, "url", what),
    )


def parse_event(envelope: Any) -> WebhookEvent:
    """
    Converte o envelope JSON do webhook na variante correspondente.

    Erros no envelope levantam EnvelopeError; erros no bloco `data` de um
    tipo conhecido levantam PayloadError. Tipos desconhecidos não são erro:
    viram UnknownEvent e o bloco `data` nem é lido.
    """
    envelope = _expect_object(envelope, "webhook", EnvelopeError)
    event_type = _str(envelope, "type", "webhook", EnvelopeError)
    action = _str(envelope, "action", "webhook", EnvelopeError)
    actor_raw = envelope.get("actor")
    actor = parse_user(actor_raw, "webhook.actor", EnvelopeError) if actor_raw is not None else None

    if event_type == "Issue":
        return IssueEvent(action=action, issue=parse_webhook_issue(envelope.get("data")), actor=actor)
    if event_type == "Comment":
        return CommentEvent(action=action, comment=parse_webhook_comment(envelope.get("data")), actor=actor)
    if event_type == "Project":
        return ProjectEvent(action=action, project=parse_webhook_project(envelope.get("data")), actor=actor)
    return UnknownEvent(type=event_type, action=action, actor=actor)
