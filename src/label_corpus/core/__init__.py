"""Core domain layer."""

from label_corpus.core.corpus import HEADER, Corpus, CorpusAssembler, CorpusLine, TrainingItem
from label_corpus.core.entities import (
    Failed,
    FetchOutcome,
    Found,
    ItemKind,
    ItemPage,
    LabelNode,
    NotFound,
    PaginationResult,
    RateLimited,
    RemoteItem,
    RepositoryRef,
    RestLabel,
    TransientError,
)
from label_corpus.core.interfaces import GraphConnection, ItemClient
from label_corpus.core.label_filter import InterestFilter, MissingCapability, accept_all_labels, build_label_filter
from label_corpus.core.paginator import BulkPaginator
from label_corpus.core.reconciler import CountReconciler
from label_corpus.core.resolver import MissingItemResolver

__all__ = [
    "HEADER",
    "Corpus",
    "CorpusAssembler",
    "CorpusLine",
    "TrainingItem",
    "ItemKind",
    "ItemPage",
    "LabelNode",
    "PaginationResult",
    "RemoteItem",
    "RepositoryRef",
    "RestLabel",
    "FetchOutcome",
    "Found",
    "NotFound",
    "RateLimited",
    "TransientError",
    "Failed",
    "GraphConnection",
    "ItemClient",
    "InterestFilter",
    "MissingCapability",
    "accept_all_labels",
    "build_label_filter",
    "BulkPaginator",
    "CountReconciler",
    "MissingItemResolver",
]
