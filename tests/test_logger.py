from menucost.infra import logger as mlog


def test_logging_disabled_is_silent(monkeypatch):
    monkeypatch.setattr(mlog, "ENABLE_LOGGING", False)
    monkeypatch.setattr(mlog, "ENABLE_OUTPUT", False)
    mlog.log_transaction("noop", {"x": 1})
    assert mlog.get_log_summary("transactions") is None


def test_transaction_log_roundtrip(monkeypatch, tmp_path):
    log_file = tmp_path / "transactions.log"
    tx_logger = mlog.setup_logger("menucost.test_transactions", str(log_file))
    monkeypatch.setattr(mlog, "ENABLE_LOGGING", True)
    monkeypatch.setattr(mlog, "transaction_logger", tx_logger)
    monkeypatch.setattr(mlog, "LOG_FILES", {**mlog.LOG_FILES, "transactions": log_file})

    mlog.log_transaction("create_order", {"store_id": "s1"}, result={"order_id": "o1"})
    mlog.log_transaction("create_order", {"store_id": "s1"}, error="empty order")
    for h in tx_logger.handlers:
        h.close()

    summary = mlog.get_log_summary("transactions", lines=1)
    assert "TRANSACTION_FAILED: create_order - empty order" in summary
    assert "TRANSACTION_SUCCESS" not in summary
    assert "não encontrado" in mlog.get_log_summary("ghost")
