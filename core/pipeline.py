"""
Query Pipeline Stages and Executor.

A pipeline is an ordered list of stages applied to the documents of one
collection. It is the relational-join layer behind every list endpoint: the
recipes in `core.query_builder` are built from the stages defined here.

Key Components:
- Predicates (`Eq`, `Exists`, `IContains`): Conditions usable both as SQL
  clauses and as in-memory checks.
- Stages:
  - `Match`: keep documents satisfying all predicates.
  - `Lookup`: application-level join. Collects the local values of every
    document, fetches the related documents with one batched `IN` query, runs
    an optional nested pipeline over them and attaches the matches as a list.
  - `First`: take-first reshaping of a join result (`None` when empty).
  - `DropEmpty`: drop documents whose join result is empty.
  - `AddFields`: derived fields computed from each document.
  - `Unwind` / `Group`: flatten a list into one document per element and fold
    documents back into one record per key.
  - `Project`: select and rename the output fields.
  - `Sort`: order by one field with a stable `id` tie-break.
- `Pipeline` / `execute`: The pipeline value object and its executor.

Architectural Design:
- Match stages at the head of a pipeline are pushed down to the store as a
  single `WHERE`; everything after the first non-Match stage runs in memory.
- Join results are keyed on the foreign field after the nested pipeline has
  run, so nested projections must keep that field. `Project` keeps `id` unless
  told otherwise, which covers the common `foreign_field="id"` case.
- "Take-first" and "drop if empty" are explicit stages rather than side effects
  of the join, so every recipe states which behavior it relies on.
"""

import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import or_

from core.logging_config import get_logger
from core.store import Document, EntityStore, column_for, get_collection

logger = get_logger(__name__)

_MISSING = object()


def get_path(document: Optional[Document], path: str, default: Any = None) -> Any:
    """Read a dotted path such as 'videoDetails.owner' from a document"""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return default
    return current


# Predicates


class Predicate(ABC):
    @abstractmethod
    def matches(self, document: Document) -> bool:
        pass

    @abstractmethod
    def to_clause(self, model) -> Any:
        pass


@dataclass(frozen=True)
class Eq(Predicate):
    field: str
    value: Any

    def matches(self, document: Document) -> bool:
        return get_path(document, self.field) == self.value

    def to_clause(self, model) -> Any:
        return column_for(model, self.field) == self.value


@dataclass(frozen=True)
class Exists(Predicate):
    """Field is present and not null"""

    field: str

    def matches(self, document: Document) -> bool:
        return get_path(document, self.field) is not None

    def to_clause(self, model) -> Any:
        return column_for(model, self.field).is_not(None)


@dataclass(frozen=True)
class IContains(Predicate):
    """Case-insensitive substring match on any of the fields"""

    fields: Tuple[str, ...]
    text: str

    def matches(self, document: Document) -> bool:
        needle = self.text.lower()
        return any(
            needle in str(get_path(document, name) or "").lower() for name in self.fields
        )

    def to_clause(self, model) -> Any:
        return or_(
            *[
                column_for(model, name).icontains(self.text, autoescape=True)
                for name in self.fields
            ]
        )


# Stages


class Stage(ABC):
    """One step of a pipeline"""

    @abstractmethod
    async def apply(self, documents: List[Document], store: EntityStore) -> List[Document]:
        pass


class Match(Stage):
    def __init__(self, *predicates: Predicate):
        self.predicates = predicates

    async def apply(self, documents, store):
        return [d for d in documents if all(p.matches(d) for p in self.predicates)]

    def __repr__(self):
        return f"Match{self.predicates!r}"


class Lookup(Stage):
    """Attach related documents from another collection as a list field"""

    def __init__(
        self,
        from_collection: str,
        local_field: str,
        as_field: str,
        foreign_field: str = "id",
        pipeline: Sequence[Stage] = (),
    ):
        self.from_collection = from_collection
        self.local_field = local_field
        self.as_field = as_field
        self.foreign_field = foreign_field
        self.pipeline = list(pipeline)

    async def apply(self, documents, store):
        local_values: List[Any] = []
        for document in documents:
            value = get_path(document, self.local_field)
            if isinstance(value, list):
                local_values.extend(value)
            elif value is not None:
                local_values.append(value)

        related = await store.find_in(self.from_collection, self.foreign_field, local_values)
        if self.pipeline:
            related = await run_stages(related, self.pipeline, store)

        index: Dict[Any, List[Document]] = defaultdict(list)
        for item in related:
            index[get_path(item, self.foreign_field)].append(item)

        joined = []
        for document in documents:
            value = get_path(document, self.local_field)
            if isinstance(value, list):
                matches = [item for key in value for item in index.get(key, [])]
            else:
                matches = list(index.get(value, [])) if value is not None else []
            joined.append({**document, self.as_field: matches})
        return joined

    def __repr__(self):
        return f"Lookup({self.from_collection}.{self.foreign_field} = {self.local_field} as {self.as_field})"


class First(Stage):
    """Replace a list field with its first element, or None when empty"""

    def __init__(self, field_name: str):
        self.field_name = field_name

    async def apply(self, documents, store):
        reshaped = []
        for document in documents:
            value = document.get(self.field_name)
            if isinstance(value, list):
                value = value[0] if value else None
            reshaped.append({**document, self.field_name: value})
        return reshaped

    def __repr__(self):
        return f"First({self.field_name})"


class DropEmpty(Stage):
    """Drop documents whose list field is missing or empty"""

    def __init__(self, field_name: str):
        self.field_name = field_name

    async def apply(self, documents, store):
        return [d for d in documents if d.get(self.field_name)]

    def __repr__(self):
        return f"DropEmpty({self.field_name})"


Computation = Callable[[Document], Any]


class AddFields(Stage):
    def __init__(self, **computations: Computation):
        self.computations = computations

    async def apply(self, documents, store):
        enriched = []
        for document in documents:
            extra = {name: compute(document) for name, compute in self.computations.items()}
            enriched.append({**document, **extra})
        return enriched

    def __repr__(self):
        return f"AddFields({', '.join(self.computations)})"


def size_of(path: str) -> Computation:
    """Length of a list field (0 when missing)"""
    return lambda document: len(get_path(document, path) or [])


def sum_of(path: str, value: Union[str, Computation]) -> Computation:
    """Sum a value over the elements of a list field"""

    def compute(document: Document) -> Any:
        total = 0
        for item in get_path(document, path) or []:
            amount = value(item) if callable(value) else get_path(item, value)
            total += amount or 0
        return total

    return compute


class Unwind(Stage):
    """Emit one document per element of a list field"""

    def __init__(self, field_name: str, preserve_empty: bool = False):
        self.field_name = field_name
        self.preserve_empty = preserve_empty

    async def apply(self, documents, store):
        unwound = []
        for document in documents:
            items = document.get(self.field_name) or []
            if not items:
                if self.preserve_empty:
                    unwound.append({**document, self.field_name: None})
                continue
            for item in items:
                unwound.append({**document, self.field_name: item})
        return unwound

    def __repr__(self):
        return f"Unwind({self.field_name}, preserve_empty={self.preserve_empty})"


class Accumulator(ABC):
    @abstractmethod
    def initial(self) -> Any:
        pass

    @abstractmethod
    def step(self, current: Any, document: Document) -> Any:
        pass


@dataclass
class FirstValue(Accumulator):
    value: Union[str, Computation]

    def initial(self):
        return _MISSING

    def step(self, current, document):
        if current is not _MISSING:
            return current
        return self.value(document) if callable(self.value) else get_path(document, self.value)


@dataclass
class Sum(Accumulator):
    value: Union[str, Computation]

    def initial(self):
        return 0

    def step(self, current, document):
        amount = self.value(document) if callable(self.value) else get_path(document, self.value)
        return current + (amount or 0)


class Group(Stage):
    """Fold documents sharing a key into one record"""

    def __init__(self, key: str, **accumulators: Accumulator):
        self.key = key
        self.accumulators = accumulators

    async def apply(self, documents, store):
        groups: Dict[Any, Dict[str, Any]] = {}
        for document in documents:
            key = get_path(document, self.key)
            state = groups.get(key)
            if state is None:
                state = {name: acc.initial() for name, acc in self.accumulators.items()}
                groups[key] = state
            for name, acc in self.accumulators.items():
                state[name] = acc.step(state[name], document)

        folded = []
        for key, state in groups.items():
            record = {"id": key}
            for name, value in state.items():
                record[name] = None if value is _MISSING else value
            folded.append(record)
        return folded

    def __repr__(self):
        return f"Group({self.key}: {', '.join(self.accumulators)})"


ProjectionSource = Union[bool, str, Computation]


class Project(Stage):
    """
    Build each output document from a mapping of output name to source.

    A source of True copies the same-named field, a string copies from a
    (dotted) path and a callable computes the value. `id` is carried over
    unless it is mapped explicitly or keep_id is False.
    """

    def __init__(self, fields: Dict[str, ProjectionSource], keep_id: bool = True):
        self.fields = fields
        self.keep_id = keep_id

    async def apply(self, documents, store):
        return [self.project(d) for d in documents]

    def project(self, document: Document) -> Document:
        shaped: Document = {}
        if self.keep_id and "id" not in self.fields and "id" in document:
            shaped["id"] = document["id"]
        for name, source in self.fields.items():
            if source is True:
                shaped[name] = get_path(document, name)
            elif callable(source):
                shaped[name] = source(document)
            else:
                shaped[name] = get_path(document, source)
        return shaped

    def __repr__(self):
        return f"Project({', '.join(self.fields)})"


class Sort(Stage):
    """Order by one field; ties fall back to id, missing values sort last"""

    def __init__(self, field_name: str = "createdAt", direction: str = "desc"):
        self.field_name = field_name
        self.descending = direction == "desc"

    async def apply(self, documents, store):
        present = [d for d in documents if get_path(d, self.field_name) is not None]
        missing = [d for d in documents if get_path(d, self.field_name) is None]
        present.sort(
            key=lambda d: (get_path(d, self.field_name), str(d.get("id", ""))),
            reverse=self.descending,
        )
        missing.sort(key=lambda d: str(d.get("id", "")), reverse=self.descending)
        return present + missing

    def __repr__(self):
        return f"Sort({self.field_name} {'desc' if self.descending else 'asc'})"


# Pipeline


@dataclass
class Pipeline:
    collection: str
    stages: List[Stage] = field(default_factory=list)

    def add(self, *stages: Stage) -> "Pipeline":
        self.stages.extend(stages)
        return self

    def split_pushdown(self) -> Tuple[List[Predicate], List[Stage]]:
        """Separate leading Match predicates from the in-memory remainder"""
        predicates: List[Predicate] = []
        index = 0
        while index < len(self.stages) and isinstance(self.stages[index], Match):
            predicates.extend(self.stages[index].predicates)
            index += 1
        return predicates, self.stages[index:]


async def run_stages(
    documents: List[Document], stages: Sequence[Stage], store: EntityStore
) -> List[Document]:
    for stage in stages:
        documents = await stage.apply(documents, store)
    return documents


async def execute(store: EntityStore, pipeline: Pipeline) -> List[Document]:
    """Run a pipeline and return every resulting document"""
    start_time = time.time()
    predicates, remainder = pipeline.split_pushdown()
    model = get_collection(pipeline.collection).model

    documents = await store.find(
        pipeline.collection, [p.to_clause(model) for p in predicates]
    )
    source_count = len(documents)
    documents = await run_stages(documents, remainder, store)

    logger.debug(
        f"Executed pipeline on {pipeline.collection}",
        extra={
            "collection": pipeline.collection,
            "stages": [repr(s) for s in pipeline.stages],
            "source_documents": source_count,
            "result_documents": len(documents),
            "execution_time_ms": round((time.time() - start_time) * 1000, 2),
        },
    )
    return documents
