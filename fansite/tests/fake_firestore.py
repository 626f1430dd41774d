"""
Dict-backed stand-in for the slice of the Firestore client API the document
backend uses.
"""

import copy


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, store, collection, doc_id):
        self._store = store
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._store.setdefault(self._collection, {})

    def get(self, transaction=None):
        return FakeSnapshot(self.id, self._docs.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._docs:
            self._docs[self.id].update(copy.deepcopy(data))
        else:
            self._docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection}/{self.id}")
        self._docs[self.id].update(copy.deepcopy(data))

    def delete(self):
        self._docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, collection, filters=()):
        self._collection = collection
        self._filters = list(filters)

    def where(self, filter=None):
        return FakeQuery(self._collection, self._filters + [filter])

    def stream(self):
        for doc_id, data in list(self._collection._docs.items()):
            if all(self._matches(data, f) for f in self._filters):
                yield FakeSnapshot(doc_id, copy.deepcopy(data))

    @staticmethod
    def _matches(data, field_filter):
        if field_filter.op_string != "==":
            raise NotImplementedError(field_filter.op_string)
        return data.get(field_filter.field_path) == field_filter.value


class FakeCollectionReference(FakeQuery):
    def __init__(self, store, name):
        self._store = store
        self.name = name
        super().__init__(self)

    @property
    def _docs(self):
        return self._store.setdefault(self.name, {})

    def document(self, doc_id):
        return FakeDocumentReference(self._store, self.name, doc_id)


class FakeTransaction:
    def set(self, ref, data, merge=False):
        ref.set(data, merge=merge)

    def update(self, ref, data):
        ref.update(data)


class FakeFirestoreClient:
    def __init__(self):
        self.store = {}

    def collection(self, name):
        return FakeCollectionReference(self.store, name)

    def transaction(self):
        return FakeTransaction()
