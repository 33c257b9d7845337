"""GitHub GraphQL adapter for label counts and label-filtered item pages."""

import logging
from datetime import datetime
from typing import Any, Optional

from label_corpus.adapters.github.session import GitHubApiError, GitHubSession, GraphQLQueryError
from label_corpus.core import GraphConnection, ItemKind, ItemPage, LabelNode, RemoteItem, RepositoryRef

logger = logging.getLogger(__name__)

LABELS_QUERY = """
query($owner: String!, $name: String!, $after: String) {
  repository(owner: $owner, name: $name) {
    labels(first: 100, after: $after) {
      pageInfo { endCursor hasNextPage }
      nodes {
        name
        color
        issues { totalCount }
        pullRequests { totalCount }
      }
    }
  }
}
"""

ISSUES_QUERY = """
query($owner: String!, $name: String!, $labels: [String!], $first: Int!, $after: String) {
  repository(owner: $owner, name: $name) {
    issues(first: $first, after: $after, labels: $labels) {
      totalCount
      pageInfo { endCursor hasNextPage }
      nodes {
        number
        title
        body
        createdAt
        author { login }
      }
    }
  }
}
"""

PULL_REQUESTS_QUERY = """
query($owner: String!, $name: String!, $labels: [String!], $first: Int!, $after: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(first: $first, after: $after, labels: $labels) {
      totalCount
      pageInfo { endCursor hasNextPage }
      nodes {
        number
        title
        body
        createdAt
        author { login }
        files(first: 100) {
          pageInfo { endCursor hasNextPage }
          nodes { path }
        }
      }
    }
  }
}
"""

PULL_REQUEST_FILES_QUERY = """
query($owner: String!, $name: String!, $number: Int!, $after: String) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $number) {
      files(first: 100, after: $after) {
        pageInfo { endCursor hasNextPage }
        nodes { path }
      }
    }
  }
}
"""


def parse_datetime(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GitHubGraphQLConnection(GraphConnection):
    """Bulk queries against the GitHub GraphQL endpoint."""

    def __init__(self, session: GitHubSession) -> None:
        self.session = session

    async def run(self, query: str, variables: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Execute a query and return its ``data``; None for an empty response."""
        client = await self.session.client()
        response = await client.post(
            self.session.graphql_url,
            json={"query": query, "variables": variables},
        )

        if response.status_code != 200:
            raise GitHubApiError(
                f"GraphQL request failed ({response.status_code})",
                status=response.status_code,
                url=self.session.graphql_url,
            )

        if not response.content:
            return None

        payload = response.json()
        data = payload.get("data")
        errors = payload.get("errors") or []

        if errors and not data:
            raise GraphQLQueryError(errors, url=self.session.graphql_url)
        if errors:
            logger.warning("GraphQL returned partial data: %s", errors)

        return data or None

    async def labels_with_counts(self, repository: RepositoryRef) -> list[LabelNode]:
        """Fetch every label of the repository with its issue and PR counts."""
        labels: list[LabelNode] = []
        after: Optional[str] = None

        while True:
            data = await self.run(
                LABELS_QUERY,
                {"owner": repository.owner, "name": repository.name, "after": after},
            )
            repo = (data or {}).get("repository")
            if not repo:
                raise GitHubApiError(
                    f"Repository {repository} returned no labels",
                    status=404,
                    url=self.session.graphql_url,
                )

            connection = repo["labels"]
            for node in connection.get("nodes") or []:
                if not node:
                    continue
                labels.append(LabelNode(
                    name=node["name"],
                    color=node.get("color") or "",
                    issue_count=(node.get("issues") or {}).get("totalCount", 0),
                    pull_request_count=(node.get("pullRequests") or {}).get("totalCount", 0),
                ))

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")

        return labels

    async def fetch_items_page(
        self,
        repository: RepositoryRef,
        label: str,
        kind: ItemKind,
        after: Optional[str],
        first: int,
    ) -> Optional[ItemPage]:
        """Fetch one page of issues or pull requests carrying the label."""
        is_pull_request = kind is ItemKind.PULL_REQUEST
        query = PULL_REQUESTS_QUERY if is_pull_request else ISSUES_QUERY
        data = await self.run(query, {
            "owner": repository.owner,
            "name": repository.name,
            "labels": [label],
            "first": first,
            "after": after,
        })

        repo = (data or {}).get("repository")
        if not repo:
            return None
        connection = repo.get("pullRequests" if is_pull_request else "issues")
        if connection is None:
            return None

        items: list[RemoteItem] = []
        for node in connection.get("nodes") or []:
            if not node:
                continue
            item = self._create_item(node, is_pull_request)
            files_page = (node.get("files") or {}).get("pageInfo") or {}
            if is_pull_request and files_page.get("hasNextPage"):
                item.file_paths.extend(
                    await self._remaining_files(repository, item.number, files_page.get("endCursor"))
                )
            items.append(item)
        page_info = connection.get("pageInfo") or {}

        return ItemPage(
            items=items,
            total_count=connection.get("totalCount", len(items)),
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    async def _remaining_files(self, repository: RepositoryRef, number: int, after: Optional[str]) -> list[str]:
        """Page through the changed files of a pull request past the first page."""
        paths: list[str] = []

        while True:
            data = await self.run(PULL_REQUEST_FILES_QUERY, {
                "owner": repository.owner,
                "name": repository.name,
                "number": number,
                "after": after,
            })
            pull_request = ((data or {}).get("repository") or {}).get("pullRequest") or {}
            files = pull_request.get("files")
            if files is None:
                logger.warning(
                    "No further files returned for #%d in %s; keeping %d more.", number, repository, len(paths)
                )
                break

            paths.extend(f["path"] for f in files.get("nodes") or [] if f)

            page_info = files.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")

        return paths

    def _create_item(self, node: dict, is_pull_request: bool) -> RemoteItem:
        author = node.get("author") or {}
        files = (node.get("files") or {}).get("nodes") or []
        return RemoteItem(
            number=node["number"],
            title=node.get("title") or "",
            body=node.get("body"),
            author=author.get("login"),
            created_at=parse_datetime(node["createdAt"]),
            is_pull_request=is_pull_request,
            file_paths=[f["path"] for f in files if f] if is_pull_request else [],
        )
