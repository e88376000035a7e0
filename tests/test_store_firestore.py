from datetime import UTC, date, datetime, timedelta
from itertools import count

from fleetdesk.imports import ImportRecord
from fleetdesk.imports.store_firestore import FirestoreImportStore

D = date(2026, 10, 19)


class FakeDoc:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class FakeDocRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def delete(self):
        self._collection.docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, docs, field_path, value):
        self._docs = docs
        self._field_path = field_path
        self._value = value

    def stream(self):
        for doc_id, data in list(self._docs.items()):
            if data.get(self._field_path) == self._value:
                yield FakeDoc(doc_id, data)


class FakeCollection:
    def __init__(self):
        self.docs = {}
        self._ids = count(1)

    def add(self, data):
        doc_id = f"doc{next(self._ids)}"
        self.docs[doc_id] = dict(data)
        return datetime.now(UTC), FakeDocRef(self, doc_id)

    def document(self, doc_id):
        return FakeDocRef(self, doc_id)

    def where(self, *, field_path, op_string, value):
        assert op_string == "=="
        return FakeQuery(self.docs, field_path, value)


class FakeClient:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())


def test_insert_uses_dashboard_field_names():
    client = FakeClient()
    store = FirestoreImportStore(client=client)

    doc_id = store.insert(
        ImportRecord(transport_reference="52736285", route="RAH8604-SC", weight=4965.3, box_count=1295, date=D)
    )

    data = client.collections["importedData"].docs[doc_id]
    assert data["transportSAP"] == "52736285"
    assert data["routes"] == "RAH8604-SC"
    assert data["boxes"] == 1295
    assert data["date"] == "2026-10-19"
    assert "createdAt" in data and "updatedAt" in data


def test_list_by_date_maps_documents_and_orders_by_creation():
    client = FakeClient()
    collection = client.collection("shipments")
    now = datetime.now(UTC)
    collection.docs["b"] = {
        "transportSAP": "2", "routes": "B", "weight": "4.965,30", "boxes": "1.295",
        "date": "2026-10-19", "createdAt": now,
    }
    collection.docs["a"] = {
        "transportSAP": "1", "routes": "A", "weight": 10, "boxes": 3,
        "date": "2026-10-19", "createdAt": now - timedelta(minutes=5),
    }
    collection.docs["c"] = {"transportSAP": "3", "routes": "C", "date": "2026-10-20", "createdAt": now}
    store = FirestoreImportStore(client=client, collection="shipments")

    records = store.list_by_date(D)

    assert [(r.id, r.transport_reference) for r in records] == [("a", "1"), ("b", "2")]
    assert records[1].weight == 4965.3
    assert records[1].box_count == 1295


def test_delete_by_id_removes_document():
    client = FakeClient()
    store = FirestoreImportStore(client=client)
    doc_id = store.insert(ImportRecord(transport_reference="1", route="A", date=D))

    store.delete_by_id(doc_id)

    assert store.list_by_date(D) == []
