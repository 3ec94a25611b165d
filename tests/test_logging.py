"""
Tests for structured logging
"""

import json
import logging
import pytest
from datetime import date

from deposito_ledger.logging_config import JSONFormatter, setup_logging, get_logger, log_action
from deposito_ledger.system import DepositoSystem
from deposito_ledger.config import DepositoConfig
from deposito_ledger.exceptions import InsufficientFundsError


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    logger = logging.getLogger("deposito")
    handler = ListHandler()
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler
    logger.removeHandler(handler)
    logger.setLevel(previous_level)


class TestJSONFormatter:
    """Test the JSON line format"""

    def test_structured_fields(self):
        logger = get_logger("deposito.test")
        record = logger.makeRecord(logger.name, logging.INFO, __name__, 0, "Deposit posted", (), None)
        record.action = "deposit"
        record.resource = "account:1"
        record.extra = {"amount": "10.00"}

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "deposito.test"
        assert entry["message"] == "Deposit posted"
        assert entry["action"] == "deposit"
        assert entry["resource"] == "account:1"
        assert entry["extra"] == {"amount": "10.00"}
        assert "correlation_id" not in entry

    def test_setup_logging_replaces_handlers(self, tmp_path):
        log_file = tmp_path / "deposito.log"
        logger = setup_logging("WARNING", "deposito.setup_test", "text", str(log_file))
        setup_logging("WARNING", "deposito.setup_test", "text", str(log_file))

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        for handler in logger.handlers:
            handler.close()


class TestLogAction:
    """Test log_action and ledger logging"""

    def test_attaches_fields(self, captured):
        log_action(
            get_logger("deposito.test"), "info", "Something happened",
            action="act", resource="account:9", correlation_id="abc", extra={"k": 1}
        )

        record = captured.records[-1]
        assert record.action == "act"
        assert record.resource == "account:9"
        assert record.correlation_id == "abc"
        assert record.extra == {"k": 1}

    def test_ledger_logs_success_and_rejection(self, captured):
        system = DepositoSystem(config=DepositoConfig(database_url="memory://"))
        customer = system.customers.create_customer("Rina")
        tier = system.deposito_types.create("Gold", 12)
        account = system.ledger.open_account(customer.id, tier.id, initial_balance=100)

        system.ledger.deposit(account.id, 10, date(2024, 1, 1))
        with pytest.raises(InsufficientFundsError):
            system.ledger.withdraw(account.id, 50, date(2024, 1, 1), accrued_ceiling=20)

        ledger_records = [r for r in captured.records if r.name == "deposito.ledger"]
        assert any(r.levelno == logging.INFO and getattr(r, "action", None) == "deposit" for r in ledger_records)
        rejected = [r for r in ledger_records if r.levelno == logging.WARNING]
        assert rejected[-1].action == "withdraw"
        assert rejected[-1].extra == {"error": "InsufficientFundsError"}
