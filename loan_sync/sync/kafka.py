"""Realtime mirror backed by a compacted Kafka topic.

Every record is a message keyed by its id, so log compaction keeps the latest
copy of each record. A device rebuilds the full snapshot by reading the topic
from the beginning and folding messages into a latest-value-per-key table.
A snapshot is only delivered once every assigned partition has been read up
to its end, so subscribers never see a partially rebuilt table. Records this
device pushed but has not read back yet are laid over the table.

The adapter never starts threads. Call :meth:`KafkaSyncAdapter.pump` from the
owning loop; snapshots are delivered from inside ``pump`` so handlers run to
completion on the caller's thread.
"""

import json
import logging
from typing import Any

from confluent_kafka import OFFSET_BEGINNING, Consumer, KafkaError, KafkaException, Producer

from loan_sync.config import KafkaSyncConfig
from loan_sync.exceptions import ConfigurationError, ParseError, PushError, SyncConnectError
from loan_sync.models import LoanRecord
from loan_sync.sync.base import SnapshotCallback, Subscription, SyncAdapter, SyncStats
from loan_sync.transfer.serialization import record_from_dict, record_to_dict

logger = logging.getLogger(__name__)


class KafkaSyncAdapter(SyncAdapter):
    """Sync adapter over a compacted Kafka topic."""

    def __init__(self) -> None:
        self.config: KafkaSyncConfig | None = None
        self.producer: Producer | None = None
        self.consumer: Consumer | None = None
        self.stats = SyncStats()
        self._table: dict[str, LoanRecord] = {}
        self._unconfirmed: dict[str, LoanRecord] = {}  # Pushed, not read back yet
        self._assigned: set[tuple[str, int]] = set()
        self._at_eof: set[tuple[str, int]] = set()
        self._subscriptions: list[Subscription] = []
        self._needs_delivery = False

    def connect(self, config: KafkaSyncConfig | str) -> bool:
        """Create the producer and consumer.

        Parameters
        ----------
        config : KafkaSyncConfig | str
            Sync configuration or bootstrap servers string.

        Returns
        -------
        bool
            False when the configuration is unusable; the error is logged.
        """
        if isinstance(config, str):
            config = KafkaSyncConfig(bootstrap_servers=config)

        try:
            config.validate()
            producer = Producer(config.to_producer_dict())
            consumer = Consumer(config.to_consumer_dict())
            consumer.subscribe([config.topic], on_assign=self._on_assign, on_revoke=self._on_revoke)
        except (ConfigurationError, KafkaException, TypeError, ValueError) as e:
            error = SyncConnectError(f"Cannot connect to {getattr(config, 'topic', config)}: {e}")
            logger.error("Sync connect failed: %s", error)
            return False

        self.config = config
        self.producer = producer
        self.consumer = consumer
        self._table.clear()
        self._unconfirmed.clear()
        self._assigned.clear()
        self._at_eof.clear()
        logger.info("Connected to %s", config.bootstrap_servers, extra={"topic": config.topic})
        return True

    def _on_assign(self, consumer: Any, partitions: list[Any]) -> None:
        """Rewind assigned partitions so the snapshot is rebuilt from scratch."""
        for partition in partitions:
            partition.offset = OFFSET_BEGINNING
            self._assigned.add((partition.topic, partition.partition))
            self._at_eof.discard((partition.topic, partition.partition))
        consumer.assign(partitions)

    def _on_revoke(self, consumer: Any, partitions: list[Any]) -> None:
        for partition in partitions:
            self._assigned.discard((partition.topic, partition.partition))
            self._at_eof.discard((partition.topic, partition.partition))

    @property
    def caught_up(self) -> bool:
        """True once every assigned partition has been read to its end."""
        return bool(self._assigned) and self._assigned <= self._at_eof

    def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        """Register a snapshot callback; the first snapshot comes once caught up."""
        subscription = Subscription(on_snapshot, on_cancel=self._detach)
        if self.consumer is None:
            subscription.cancel()
            return subscription
        self._subscriptions.append(subscription)
        self._needs_delivery = True
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            if msg is not None and msg.key() is not None:
                self._unconfirmed.pop(msg.key().decode("utf-8"), None)
            logger.error("Push failed: %s", PushError(str(err)))
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def push(self, record: LoanRecord) -> bool:
        """Send one record; delivery is reported asynchronously."""
        if self.producer is None or self.config is None:
            return False

        value = json.dumps(record_to_dict(record), ensure_ascii=False).encode("utf-8")
        try:
            self.producer.produce(
                topic=self.config.topic,
                key=record.id.encode("utf-8"),
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as e:
            self.stats.failed += 1
            logger.error("Push of %s failed: %s", record.id, e, extra={"record_id": record.id})
            return False

        self.stats.sent += 1
        self._unconfirmed[record.id] = record
        self.producer.poll(0)
        return True

    def pump(self, max_messages: int = 500, timeout: float | None = None) -> int:
        """Consume pending messages and deliver a snapshot if anything changed.

        Nothing is delivered until the adapter is :attr:`caught_up`; changes
        applied before that are folded into the first complete snapshot.

        Parameters
        ----------
        max_messages : int
            Upper bound on messages consumed in this call.
        timeout : float | None
            Seconds to wait for messages (default: ``config.poll_timeout``).

        Returns
        -------
        int
            Number of record messages applied to the table.
        """
        if self.consumer is None or self.config is None:
            return 0
        if timeout is None:
            timeout = self.config.poll_timeout

        if self.producer is not None:
            self.producer.poll(0)

        try:
            messages = self.consumer.consume(num_messages=max_messages, timeout=timeout)
        except KafkaException as e:
            logger.error("Sync consume failed: %s", e)
            return 0

        applied = 0
        for msg in messages:
            error = msg.error()
            if error:
                if error.code() == KafkaError._PARTITION_EOF:
                    self._at_eof.add((msg.topic(), msg.partition()))
                else:
                    logger.warning("Sync consumer error: %s", error)
                continue
            self._at_eof.discard((msg.topic(), msg.partition()))
            if self._apply_message(msg):
                applied += 1

        if applied:
            self._needs_delivery = True
        if self._needs_delivery and self.caught_up:
            self._deliver()
        return applied

    def _apply_message(self, msg: Any) -> bool:
        raw_key = msg.key()
        if raw_key is None:
            logger.warning("Skipping unkeyed message at offset %s", msg.offset())
            return False
        key = raw_key.decode("utf-8") if isinstance(raw_key, bytes) else str(raw_key)

        value = msg.value()
        if value is None:
            # Compaction tombstone: the record was purged from the topic
            return self._table.pop(key, None) is not None

        try:
            record = record_from_dict(json.loads(value))
        except (ParseError, ValueError) as e:
            logger.warning("Skipping invalid record message %s: %s", key, e)
            return False

        self._table[record.id] = record
        pushed = self._unconfirmed.get(record.id)
        if pushed is not None and record.last_updated >= pushed.last_updated:
            del self._unconfirmed[record.id]
        return True

    def _deliver(self) -> None:
        self._needs_delivery = False
        self.stats.snapshots += 1
        table = {**self._table, **self._unconfirmed}
        snapshot = list(table.values())
        for subscription in list(self._subscriptions):
            subscription.deliver(snapshot)

    def is_connected(self) -> bool:
        return self.producer is not None and self.consumer is not None

    def flush(self, timeout: float = 10.0) -> None:
        """Flush pending pushes."""
        if self.producer is not None:
            self.producer.flush(timeout)

    def close(self) -> None:
        """Cancel subscriptions, flush and close the clients."""
        for subscription in list(self._subscriptions):
            subscription.cancel()

        self.flush()
        if self.consumer is not None:
            self.consumer.close()

        logger.info(
            "Sync adapter closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
        self.producer = None
        self.consumer = None
