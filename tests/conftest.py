"""
Shared test doubles.

`FakeFirestore` covers the slice of the google-cloud-firestore client the repositories use:
collection/document/get/set/update, chained `where("f", "==", v)`, `order_by` with a
direction, `limit` and `stream`.
"""
import itertools
import os

os.environ.setdefault("REMINDERS_ENABLED", "false")

_ids = itertools.count(1)


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self.id, self._store.get(self.id))

    def set(self, data):
        self._store[self.id] = dict(data)

    def update(self, patch):
        if self.id not in self._store:
            raise KeyError(self.id)
        self._store[self.id].update(patch)

    def delete(self):
        self._store.pop(self.id, None)


class FakeQuery:
    def __init__(self, store, filters=(), order=None, max_rows=None):
        self._store = store
        self._filters = list(filters)
        self._order = order
        self._limit = max_rows

    def where(self, field, op, value):
        if op != "==":
            raise NotImplementedError(op)
        return FakeQuery(self._store, self._filters + [(field, value)], self._order, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self._store, self._filters, (field, direction), self._limit)

    def limit(self, count):
        return FakeQuery(self._store, self._filters, self._order, count)

    def stream(self):
        rows = [
            FakeSnapshot(doc_id, data)
            for doc_id, data in self._store.items()
            if all(data.get(f) == v for f, v in self._filters)
        ]
        if self._order:
            field, direction = self._order
            rows.sort(key=lambda s: s.to_dict().get(field) or "", reverse=direction == "DESCENDING")
        if self._limit is not None:
            rows = rows[: self._limit]
        return iter(rows)


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocumentRef(self._store, doc_id or f"doc{next(_ids)}")


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return FakeCollection(self.collections.setdefault(name, {}))

    def seed(self, name, doc_id, data):
        self.collections.setdefault(name, {})[doc_id] = dict(data)

    def rows(self, name):
        return self.collections.get(name, {})


class BrokenFirestore:
    """Every query raises, like a Firestore client without permissions."""

    def collection(self, name):
        raise RuntimeError(f"permission denied on {name}")
