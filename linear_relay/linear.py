import logging
from typing import Any, Dict, List, Optional

import requests

from .constants import LINEAR_PAGE_SIZE
from .models import Issue, PayloadError, parse_issue

logger = logging.getLogger(__name__)


OPEN_ISSUES_QUERY = """
query($cursor: String) {
  issues(
    filter: {
      state: { type: { nin: ["completed", "canceled"] } }
    }
    first: %d
    after: $cursor
    orderBy: updatedAt
  ) {
    nodes {
      id
      identifier
      title
      priority
      priorityLabel
      url
      createdAt
      updatedAt
      state {
        id
        name
        color
        type
      }
      assignee {
        id
        name
        displayName
        email
      }
      team {
        id
        name
        key
      }
      labels {
        nodes {
          id
          name
          color
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
""" % LINEAR_PAGE_SIZE


class LinearAPIError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LinearClient:
    def __init__(self, api_key: str, api_url: str, timeout: float = 30, max_pages: int = 50):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.max_pages = max_pages

    # ---------- Setup helpers ----------

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": self.api_key,
        }

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Executa uma query GraphQL e devolve o bloco `data`."""
        body = {"query": query}
        if variables:
            body["variables"] = variables

        try:
            resp = requests.post(self.api_url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise LinearAPIError(f"failed to execute request: {exc}") from exc

        if resp.status_code != 200:
            raise LinearAPIError(
                f"linear API returned status {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
            )

        try:
            result = resp.json()
        except ValueError as exc:
            raise LinearAPIError(f"failed to parse response: {exc}") from exc
        if not isinstance(result, dict):
            raise LinearAPIError("failed to parse response: expected JSON object")

        errors = result.get("errors")
        if errors and not isinstance(errors, list):
            raise LinearAPIError(f"failed to parse response: errors must be a list, got {type(errors).__name__}")
        if errors:
            messages = [str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors]
            raise LinearAPIError(f"GraphQL errors: {'; '.join(messages)}")

        return result.get("data") or {}

    # ---------- Consultas ----------

    def fetch_all_open_issues(self) -> List[Issue]:
        """
        Pagina todas as issues abertas (estado fora de completed/canceled).
        Para em `max_pages` páginas mesmo que a API indique mais resultados.
        """
        issues: List[Issue] = []
        cursor: Optional[str] = None

        for page in range(1, self.max_pages + 1):
            variables = {"cursor": cursor} if cursor else {}
            data = self.execute(OPEN_ISSUES_QUERY, variables)

            try:
                connection = data["issues"]
                nodes = connection.get("nodes") or []
                page_info = connection.get("pageInfo") or {}
                issues.extend(parse_issue(node) for node in nodes)
                has_next = page_info.get("hasNextPage")
                cursor = page_info.get("endCursor")
                if cursor is not None and not isinstance(cursor, str):
                    raise TypeError("endCursor must be a string")
            except (KeyError, TypeError, AttributeError, PayloadError) as exc:
                raise LinearAPIError(f"failed to parse issues response: {exc}") from exc

            logger.debug("Linear: página %d com %d issues (total=%d)", page, len(nodes), len(issues))

            if not has_next:
                return issues
            if not cursor:
                logger.warning("Linear: hasNextPage sem endCursor na página %d, encerrando paginação", page)
                return issues

        logger.warning(
            "Linear: limite de %d páginas atingido, relatório parcial com %d issues",
            self.max_pages,
            len(issues),
        )
        return issues
