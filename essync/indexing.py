"""
Send record mutations to elasticsearch

Every mutation (an upsert of a saved record, or the removal of a deleted record) becomes an IndexingRequest,
which goes through the states pending -> sent -> acknowledged or pending -> sent -> failed.
An IndexingRequest is awaitable: it returns the IndexingOutcome once elastic acknowledged the request,
or raises IndexingError if elastic (or the connection) failed. Failed requests are not retried.

There is no ordering between requests: if two mutations of the same record are in flight at the same time,
whichever elastic handles last wins. Await the first before submitting the second if order matters.
"""

import asyncio
import logging
from typing import Any

from elasticsearch import ApiError, NotFoundError, TransportError

from essync.documents.records import get_record_id
from essync.documents.serializer import serialize
from essync.models import IndexingAction, IndexingOutcome, IndexingState, MappingNode, ModelOptions

logger = logging.getLogger("essync.indexing")


class IndexingError(Exception):
    def __init__(self, outcome: IndexingOutcome):
        super().__init__(f"Could not {outcome.action} document {outcome.record_id}: {outcome.error}")
        self.outcome = outcome


class IndexingRequest:
    """A single record mutation on its way to elasticsearch"""

    def __init__(self, action: IndexingAction, record_id: str, document: dict[str, Any] | None = None):
        self.action = action
        self.record_id = record_id
        self.document = document
        self.state = IndexingState.pending
        self._completed: asyncio.Future[IndexingOutcome] = asyncio.get_running_loop().create_future()

    def __await__(self):
        return self._completed.__await__()

    def __repr__(self):
        return f"<IndexingRequest {self.action} {self.record_id} ({self.state.value})>"

    def done(self) -> bool:
        return self._completed.done()

    def mark_sent(self):
        self.state = IndexingState.sent

    def acknowledge(self, result: str | None) -> IndexingOutcome:
        self.state = IndexingState.acknowledged
        outcome = self._outcome(result=result)
        self._completed.set_result(outcome)
        return outcome

    def fail(self, error: BaseException) -> IndexingOutcome:
        self.state = IndexingState.failed
        outcome = self._outcome(error=str(error))
        exception = IndexingError(outcome)
        exception.__cause__ = error
        self._completed.set_exception(exception)
        return outcome

    def _outcome(self, **kargs) -> IndexingOutcome:
        return IndexingOutcome(record_id=self.record_id, action=self.action, state=self.state, **kargs)


class IndexingDispatcher:
    """
    Sends the documents of one model to its index. Create it with the (immutable) model options
    and the compiled mapping of the model.
    """

    def __init__(self, options: ModelOptions, mapping: MappingNode):
        self.options = options
        self.mapping = mapping
        # running tasks are referenced here so they are not garbage collected before completion
        self._tasks: set[asyncio.Task] = set()

    def to_document(self, record: Any) -> dict[str, Any]:
        """
        Serialize a record and apply the transform option (if any)
        """
        document = serialize(record, self.mapping, self.options.id_field)
        if self.options.transform is not None:
            transformed = self.options.transform(document, record)
            if transformed is not None:
                document = transformed
        return document

    def is_filtered(self, record: Any) -> bool:
        return self.options.filter is not None and bool(self.options.filter(record))

    def submit_index(self, record: Any) -> IndexingRequest:
        """
        Submit a saved record. The whole document is (re)placed in the index, fields that are no longer on
        the record disappear. Records excluded by the filter option are removed from the index instead.
        """
        record_id = get_record_id(record, self.options.id_field)
        if self.is_filtered(record):
            logger.debug(f"{self.options.model_name} {record_id} is filtered, removing it from {self.options.index}")
            return self.submit_delete(record_id)
        request = IndexingRequest("index", record_id, self.to_document(record))
        self._start(request)
        return request

    def submit_delete(self, record_id: Any) -> IndexingRequest:
        """
        Submit the removal of a record. Removing a document that is not in the index succeeds
        """
        request = IndexingRequest("delete", str(record_id))
        self._start(request)
        return request

    async def index(self, record: Any) -> IndexingOutcome:
        return await self.submit_index(record)

    async def delete(self, record_id: Any) -> IndexingOutcome:
        return await self.submit_delete(record_id)

    def _start(self, request: IndexingRequest) -> None:
        task = asyncio.create_task(self._send(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, request: IndexingRequest) -> None:
        request.mark_sent()
        try:
            elastic = self.options.elastic()
            if request.action == "index":
                response = await elastic.index(
                    index=self.options.index,
                    id=request.record_id,
                    document=request.document,
                    refresh=self.options.refresh,
                )
                result = response["result"]
            else:
                try:
                    response = await elastic.delete(
                        index=self.options.index,
                        id=request.record_id,
                        refresh=self.options.refresh,
                    )
                    result = response["result"]
                except NotFoundError:
                    result = "not_found"
        except (ApiError, TransportError, ConnectionError) as e:
            logger.warning(f"Could not {request.action} {self.options.model_name} {request.record_id}: {e}")
            request.fail(e)
            return
        except asyncio.CancelledError as e:
            request.fail(e)
            raise
        except Exception as e:
            # the request must always reach a terminal state, whatever the client raises
            logger.exception(f"Unexpected error on {request.action} {self.options.model_name} {request.record_id}")
            request.fail(e)
            return
        logger.debug(f"{request.action} {self.options.model_name} {request.record_id}: {result}")
        request.acknowledge(result)
