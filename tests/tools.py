"""
An in-memory stand in for AsyncElasticsearch, for tests that should not need a running elastic server.
It only implements the calls essync makes, and records them so tests can check what was sent.
"""

import copy
import json
from typing import Any

from elastic_transport import ApiResponseMeta, HttpHeaders, NodeConfig, ObjectApiResponse
from elasticsearch import ApiError, BadRequestError, NotFoundError
from elasticsearch.serializer import JsonSerializer


def response_meta(status: int = 200) -> ApiResponseMeta:
    return ApiResponseMeta(
        status=status, http_version="1.1", headers=HttpHeaders(), duration=0.0, node=NodeConfig("http", "localhost", 9200)
    )


def api_error(cls: type[ApiError], status: int, error_type: str, reason: str = "") -> ApiError:
    meta = response_meta(status)
    cause = {"type": error_type, "reason": reason or error_type}
    body = {"error": {**cause, "root_cause": [cause]}, "status": status}
    return cls(message=error_type, meta=meta, body=body)


def not_found(reason: str) -> ApiError:
    return api_error(NotFoundError, 404, "not_found", reason)


def bad_request(error_type: str, reason: str = "") -> ApiError:
    return api_error(BadRequestError, 400, error_type, reason)


class FakeIndices:
    def __init__(self, elastic: "FakeElasticsearch"):
        self.elastic = elastic

    async def exists(self, index: str) -> bool:
        return index in self.elastic.store

    async def create(self, index: str, mappings: dict | None = None, settings: dict | None = None):
        self.elastic.calls.append(("indices.create", index, dict(mappings=mappings, settings=settings)))
        if index in self.elastic.store:
            raise bad_request("resource_already_exists_exception", f"index [{index}] already exists")
        self.elastic.store[index] = dict(
            mappings=copy.deepcopy(mappings or {}), settings=copy.deepcopy(settings or {}), docs={}
        )
        return {"acknowledged": True, "index": index}

    async def put_mapping(self, index: str, properties: dict):
        self.elastic.calls.append(("indices.put_mapping", index, dict(properties=properties)))
        if index not in self.elastic.store:
            return self.elastic.error(not_found(f"no such index [{index}]"))
        self.elastic.store[index]["mappings"].setdefault("properties", {}).update(copy.deepcopy(properties))
        return {"acknowledged": True}

    async def delete(self, index: str):
        self.elastic.calls.append(("indices.delete", index, {}))
        if index not in self.elastic.store:
            return self.elastic.error(not_found(f"no such index [{index}]"))
        del self.elastic.store[index]
        return {"acknowledged": True}

    async def refresh(self, index: str):
        self.elastic.calls.append(("indices.refresh", index, {}))
        if index not in self.elastic.store:
            return self.elastic.error(not_found(f"no such index [{index}]"))
        return {"_shards": {"failed": 0}}

    async def get_mapping(self, index: str):
        return {index: {"mappings": self.elastic.store[index]["mappings"]}}

    async def get_settings(self, index: str):
        return {index: {"settings": {"index": self.elastic.store[index]["settings"]}}}


class FakeTransport:
    """The bulk helpers serialize actions with the serializer of the client transport"""

    def __init__(self):
        self.serializers = self

    def get_serializer(self, mimetype: str) -> JsonSerializer:
        return JsonSerializer()


class FakeElasticsearch:
    def __init__(self):
        self.store: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, dict]] = []
        self.ignore_status: set[int] = set()
        # set this to an exception to make the next index/delete request fail with it
        self.fail_with: Exception | None = None
        # bulk operations on these document ids are rejected
        self.rejected_ids: set[str] = set()
        self.transport = FakeTransport()
        self.indices = FakeIndices(self)

    def options(self, ignore_status: int | tuple[int, ...] = (), **kargs) -> "FakeElasticsearch":
        clone = copy.copy(self)
        clone.ignore_status = {ignore_status} if isinstance(ignore_status, int) else set(ignore_status)
        clone.indices = FakeIndices(clone)
        return clone

    def error(self, e: ApiError):
        if e.meta.status in self.ignore_status:
            return e.body
        raise e

    def documents(self, index: str) -> dict[str, dict]:
        return self.store[index]["docs"]

    def _fail(self):
        if self.fail_with is not None:
            e, self.fail_with = self.fail_with, None
            raise e

    async def index(self, index: str, id: str, document: dict, refresh: bool | str = False):
        self.calls.append(("index", index, dict(id=id, document=document, refresh=refresh)))
        self._fail()
        if index not in self.store:
            # elastic creates missing indices with dynamic mappings
            self.store[index] = dict(mappings={}, settings={}, docs={})
        docs = self.store[index]["docs"]
        result = "updated" if id in docs else "created"
        docs[id] = copy.deepcopy(document)
        return {"_index": index, "_id": id, "result": result}

    async def delete(self, index: str, id: str, refresh: bool | str = False):
        self.calls.append(("delete", index, dict(id=id, refresh=refresh)))
        self._fail()
        if index not in self.store or id not in self.store[index]["docs"]:
            return self.error(not_found(f"document [{id}] missing"))
        del self.store[index]["docs"][id]
        return {"_index": index, "_id": id, "result": "deleted"}

    async def get(self, index: str, id: str):
        if index not in self.store or id not in self.store[index]["docs"]:
            return self.error(not_found(f"document [{id}] missing"))
        return {"_index": index, "_id": id, "found": True, "_source": copy.deepcopy(self.store[index]["docs"][id])}

    async def search(self, index: str, **body):
        self.calls.append(("search", index, body))
        docs = self.store.get(index, {}).get("docs", {})
        hits = [{"_index": index, "_id": id, "_source": copy.deepcopy(doc)} for id, doc in docs.items()]
        return {"took": 1, "hits": {"total": {"value": len(hits), "relation": "eq"}, "hits": hits}}

    async def count(self, index: str, query: dict | None = None):
        return {"count": len(self.store.get(index, {}).get("docs", {}))}

    async def delete_by_query(self, index: str, query: dict, **kargs):
        self.calls.append(("delete_by_query", index, dict(query=query, **kargs)))
        docs = self.store[index]["docs"]
        deleted = len(docs)
        docs.clear()
        return {"deleted": deleted, "total": deleted}

    async def bulk(self, operations: list, refresh: bool | str = False, **kargs):
        lines = [json.loads(op) if isinstance(op, (bytes, str)) else op for op in operations]
        items = []
        ids = []
        index = ""
        while lines:
            ((op_type, action),) = lines.pop(0).items()
            source = lines.pop(0) if op_type in ("index", "create", "update") else None
            index, id = action["_index"], str(action["_id"])
            ids.append(id)
            if id in self.rejected_ids:
                error = {"type": "document_parsing_exception", "reason": f"failed to parse document [{id}]"}
                items.append({op_type: {"_index": index, "_id": id, "status": 400, "error": error}})
                continue
            docs = self.store.setdefault(index, dict(mappings={}, settings={}, docs={}))["docs"]
            if op_type == "delete":
                status = 200 if docs.pop(id, None) is not None else 404
            else:
                status = 200 if id in docs else 201
                docs[id] = copy.deepcopy(source)
            items.append({op_type: {"_index": index, "_id": id, "status": status}})
        self.calls.append(("bulk", index, dict(ids=ids, refresh=refresh)))
        errors = any(item[op_type].get("error") for item in items for op_type in item)
        return ObjectApiResponse(body={"took": 1, "errors": errors, "items": items}, meta=response_meta())

    async def ping(self) -> bool:
        return True

    async def close(self):
        pass
