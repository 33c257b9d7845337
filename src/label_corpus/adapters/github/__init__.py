"""GitHub API adapters."""

from label_corpus.adapters.github.graphql_client import GitHubGraphQLConnection
from label_corpus.adapters.github.rest_client import GitHubRestClient
from label_corpus.adapters.github.session import GitHubApiError, GitHubSession, GraphQLQueryError

__all__ = [
    "GitHubApiError",
    "GitHubGraphQLConnection",
    "GitHubRestClient",
    "GitHubSession",
    "GraphQLQueryError",
]
