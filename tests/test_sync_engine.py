import threading

from sqlalchemy.exc import OperationalError

from models.sync_log import SyncLog, SyncLogStatus
from models.sync_queue import SyncOperation, SyncQueueEntry
from services.remote import RemoteConnectionError, RemoteSyncConfig
from services.settings import load_remote_config, save_remote_config
from services.sync_engine import BUSY, DISABLED, SyncEngine
from services.sync_queue import enqueue, mark_synced, pending_batch

from conftest import FakeConnector, FakeRemote


def _queue(session, *record_ids, operation=SyncOperation.INSERT):
    for rid in record_ids:
        enqueue(
            session,
            table="products",
            operation=operation,
            record_id=rid,
            payload={"id": rid, "name": f"item {rid}", "price": 9.99, "active": 1},
        )
    session.commit()


def test_successful_pass_replicates_item(session, enable_sync, engine, connector):
    enable_sync("mysql")
    enqueue(
        session,
        table="products",
        operation=SyncOperation.INSERT,
        record_id=7,
        payload={"id": 7, "name": "Widget", "price": 9.99, "active": 1},
    )
    session.commit()

    result = engine.run_sync()

    assert result.success is True
    assert (result.synced, result.failed) == (1, 0)
    assert result.status == SyncLogStatus.SUCCESS

    [(sql, params)] = connector.remote.executed
    assert sql.startswith("INSERT INTO products (id, name, price, active)")
    assert "ON DUPLICATE KEY UPDATE" in sql
    assert params == [7, "Widget", 9.99, 1]

    log = session.query(SyncLog).one()
    assert (log.status, log.items_synced, log.items_failed) == (SyncLogStatus.SUCCESS, 1, 0)
    assert pending_batch(session) == []
    assert load_remote_config(session).last_sync_at is not None
    assert connector.remote.closed == 1
    assert connector.calls[0][1] == 10


def test_disabled_config_does_nothing(session, enable_sync, engine, connector):
    enable_sync(enabled=False)
    _queue(session, 1)

    result = engine.run_sync()

    assert result.success is False
    assert (result.synced, result.failed) == (0, 0)
    assert result.status == DISABLED
    assert connector.calls == []
    assert session.query(SyncLog).count() == 0
    assert len(pending_batch(session)) == 1


def test_incomplete_config_is_an_error_without_log(session, enable_sync, engine, connector):
    enable_sync(host="")
    _queue(session, 1)

    result = engine.run_sync()

    assert result.success is False
    assert result.status == SyncLogStatus.ERROR
    assert "host" in result.message
    assert connector.calls == []
    assert session.query(SyncLog).count() == 0


def test_all_items_failing_is_error_not_partial(session, enable_sync):
    enable_sync("postgresql")
    _queue(session, 1, 2, 3)
    connector = FakeConnector(FakeRemote(fail_on=lambda sql, params: True))
    engine = SyncEngine(session, connect=connector)

    result = engine.run_sync()

    assert result.success is True
    assert (result.synced, result.failed) == (0, 3)
    assert result.status == SyncLogStatus.ERROR

    entries = session.query(SyncQueueEntry).order_by(SyncQueueEntry.id).all()
    assert all(e.synced is False for e in entries)
    assert [e.retry_count for e in entries] == [1, 1, 1]
    assert all(e.last_error == "remote rejected statement" for e in entries)

    log = session.query(SyncLog).one()
    assert log.status == SyncLogStatus.ERROR
    assert (log.items_synced, log.items_failed) == (0, 3)


def test_mixed_batch_is_partial(session, enable_sync):
    enable_sync("mysql")
    _queue(session, 1, 2, 3, 4, 5)
    connector = FakeConnector(FakeRemote(fail_on=lambda sql, params: params[0] in (2, 4)))
    engine = SyncEngine(session, connect=connector)

    result = engine.run_sync()

    assert result.status == SyncLogStatus.PARTIAL
    assert (result.synced, result.failed) == (3, 2)
    assert [e.record_id for e in pending_batch(session)] == [2, 4]
    assert [params[0] for _, params in connector.remote.executed] == [1, 3, 5]


def test_failed_items_are_retried_on_next_pass(session, enable_sync):
    enable_sync("mysql")
    _queue(session, 1)
    remote = FakeRemote(fail_on=lambda sql, params: True)
    engine = SyncEngine(session, connect=FakeConnector(remote))
    engine.run_sync()

    engine._connect = FakeConnector()
    result = engine.run_sync()

    assert result.status == SyncLogStatus.SUCCESS
    assert result.synced == 1
    entry = session.query(SyncQueueEntry).one()
    assert entry.synced is True
    assert entry.retry_count == 1


def test_items_replay_in_enqueue_order(session, enable_sync, engine, connector):
    enable_sync("postgresql")
    _queue(session, 9)
    _queue(session, 9, operation=SyncOperation.UPDATE)
    _queue(session, 9, operation=SyncOperation.DELETE)

    engine.run_sync()

    statements = [sql for sql, _ in connector.remote.executed]
    assert statements[0].startswith("INSERT INTO products")
    assert statements[1].startswith("UPDATE products SET name = ?")
    assert statements[2] == "UPDATE products SET active = 0 WHERE id = ?"


def test_undecodable_payload_counts_as_item_failure(session, enable_sync, engine, connector):
    enable_sync("mysql")
    session.add(SyncQueueEntry(table_name="products", operation="UPDATE", record_id=1, data="not json"))
    session.commit()
    _queue(session, 2)

    result = engine.run_sync()

    assert (result.synced, result.failed) == (1, 1)
    assert result.status == SyncLogStatus.PARTIAL
    assert [e.record_id for e in pending_batch(session)] == [1]


def test_connect_failure_logs_error_and_keeps_watermark(session, enable_sync):
    enable_sync("mysql")
    _queue(session, 1, 2)
    connector = FakeConnector(error=RemoteConnectionError("Can't connect to MySQL server on 'db'"))
    engine = SyncEngine(session, connect=connector)

    result = engine.run_sync()

    assert result.success is False
    assert result.status == SyncLogStatus.ERROR
    assert "Can't connect" in result.message
    assert load_remote_config(session).last_sync_at is None
    assert len(pending_batch(session)) == 2
    assert all(e.retry_count == 0 for e in pending_batch(session))

    log = session.query(SyncLog).one()
    assert (log.status, log.items_synced, log.items_failed) == (SyncLogStatus.ERROR, 0, 0)


def test_remote_is_closed_even_if_close_raises(session, enable_sync):
    enable_sync("mysql")
    _queue(session, 1)
    remote = FakeRemote(close_error=RuntimeError("broken pipe"))
    engine = SyncEngine(session, connect=FakeConnector(remote))

    result = engine.run_sync()

    assert result.status == SyncLogStatus.SUCCESS
    assert remote.closed == 1


def test_empty_queue_is_a_successful_pass(session, enable_sync, engine, connector):
    enable_sync("mysql")

    result = engine.run_sync()

    assert result.success is True
    assert (result.synced, result.failed, result.status) == (0, 0, SyncLogStatus.SUCCESS)
    assert session.query(SyncLog).count() == 1
    assert load_remote_config(session).last_sync_at is not None


def test_batch_limit_bounds_one_pass(session, enable_sync):
    enable_sync("mysql")
    _queue(session, 1, 2, 3)
    engine = SyncEngine(session, connect=FakeConnector(), batch_limit=2)

    assert engine.run_sync().synced == 2
    assert engine.run_sync().synced == 1
    assert pending_batch(session) == []


def test_concurrent_pass_is_rejected(session, enable_sync, engine, connector):
    enable_sync("mysql")
    _queue(session, 1)
    results = []

    engine._lock.acquire()
    try:
        worker = threading.Thread(target=lambda: results.append(engine.run_sync()))
        worker.start()
        worker.join(timeout=5)
    finally:
        engine._lock.release()

    [result] = results
    assert result.success is False
    assert result.status == BUSY
    assert connector.calls == []
    assert session.query(SyncLog).count() == 0


def test_config_changes_apply_on_next_pass(session, enable_sync, engine, connector):
    enable_sync("mysql")
    _queue(session, 1)
    engine.run_sync()

    save_remote_config(session, {"driver": "postgresql"})
    _queue(session, 2)
    engine.run_sync()

    first, second = [sql for sql, _ in connector.remote.executed]
    assert "ON DUPLICATE KEY UPDATE" in first
    assert "ON CONFLICT (id)" in second


def test_test_connection(session):
    cfg = RemoteSyncConfig(host="db", database="pos", user="u")
    connector = FakeConnector()

    result = SyncEngine(session, connect=connector).test_connection(cfg)

    assert result["success"] is True
    assert connector.remote.executed == [("SELECT 1", [])]
    assert connector.remote.closed == 1


def test_test_connection_reports_failure(session):
    cfg = RemoteSyncConfig(host="db", database="pos", user="u")
    connector = FakeConnector(error=RemoteConnectionError("Access denied"))

    result = SyncEngine(session, connect=connector).test_connection(cfg)

    assert result == {"success": False, "message": "Access denied"}


def test_test_connection_requires_complete_config(session):
    connector = FakeConnector()

    result = SyncEngine(session, connect=connector).test_connection(RemoteSyncConfig(host="db"))

    assert result["success"] is False
    assert connector.calls == []


def test_init_remote_schema_runs_ddl(session):
    cfg = RemoteSyncConfig(host="db", database="pos", user="u")
    connector = FakeConnector()

    result = SyncEngine(session, connect=connector).init_remote_schema(cfg)

    assert result["success"] is True
    ddl = [sql for sql, _ in connector.remote.executed]
    assert len(ddl) == 3
    assert all(sql.startswith("CREATE TABLE IF NOT EXISTS") for sql in ddl)
    assert connector.remote.closed == 1


def test_get_status_and_purge(session, enable_sync, engine):
    enable_sync("mysql")
    _queue(session, 1, 2)
    engine.run_sync()
    _queue(session, 3)

    status = engine.get_status()

    assert status["pending"] == 1
    assert status["enabled"] is True
    assert status["last_sync_at"] is not None
    assert status["recent"][0]["status"] == SyncLogStatus.SUCCESS
    assert status["recent"][0]["items_synced"] == 2

    assert engine.purge_synced() == 2
    assert session.query(SyncQueueEntry).count() == 1


def test_local_store_failure_keeps_real_counts_and_watermark(session, enable_sync, engine, monkeypatch):
    enable_sync("mysql")
    _queue(session, 1, 2, 3, 4, 5)
    calls = []

    def flaky_mark_synced(db, ids):
        calls.append(ids)
        if len(calls) == 3:
            raise OperationalError("UPDATE sync_queue ...", {}, Exception("database is locked"))
        return mark_synced(db, ids)

    monkeypatch.setattr("services.sync_engine.mark_synced", flaky_mark_synced)

    result = engine.run_sync()

    assert result.success is True
    assert (result.synced, result.failed) == (2, 0)
    assert "database is locked" in result.message

    log = session.query(SyncLog).one()
    assert (log.items_synced, log.items_failed) == (2, 0)
    assert log.status == SyncLogStatus.SUCCESS
    assert session.query(SyncQueueEntry).filter(SyncQueueEntry.synced.is_(True)).count() == 2
    assert [e.record_id for e in pending_batch(session)] == [3, 4, 5]
    assert load_remote_config(session).last_sync_at is not None
