import logging

from nexttrain.core.document_store import DocumentStore
from nexttrain.core.errors import DocumentStoreError, PersistenceError
from nexttrain.schemas.timetable import train_stop_path
from nexttrain.services.normalizer import NormalizedTimetable

logger = logging.getLogger("nexttrain.writer")


class TimetableWriter:
    """Persists a normalized service date.

    The ServiceDate document is upserted first, then each train's stops are
    committed as one atomic batch. Stop documents are keyed by
    `<trainId>_<stopSequence:03d>`, so re-running a date replaces records in
    place. A failed batch aborts the remaining trains of that date; trains
    already committed stay committed.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def write(self, normalized: NormalizedTimetable) -> int:
        service_date = normalized.service_date
        try:
            self.store.set(service_date.path, service_date.to_document())
        except DocumentStoreError as e:
            raise PersistenceError(f"error writing trainDate: {e}", date=service_date.id) from e

        written = 0
        for group in normalized.stops_by_train():
            train_id = group[0].train.id
            try:
                batch = self.store.batch()
                for stop in group:
                    batch.set(train_stop_path(service_date.id, stop), stop.to_document())
                batch.commit()
            except DocumentStoreError as e:
                raise PersistenceError(
                    f"error writing trainStops for train {train_id}: {e}",
                    date=service_date.id,
                    train_id=train_id,
                ) from e
            written += len(group)

        logger.info("Finish writing for %s with %d trains (%d stops)", service_date.id, normalized.train_count, written)
        return written
