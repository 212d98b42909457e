"""
Tests for the xchain-wallet command line.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from xchainwallet.cli import app, load_mnemonic
from xchainwallet.errors import InsufficientBalanceError
from xchainwallet.models import AssetBTC, Balance, FeeRates, Fees, Tx, TxFrom, TxsPage, TxTo

runner = CliRunner()

MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
ADDRESS_0 = "1LqBGSKuX5yYUonjxT5qGfpUsXKYYWeabA"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("MNEMONIC", "MNEMONIC_FILE", "XCHAIN_NETWORK", "XCHAIN_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.get_fee_rates = AsyncMock(return_value=FeeRates(average=5, fast=10, fastest=50))
    client.get_fees = AsyncMock(return_value=Fees(average=1000, fast=1000, fastest=3900))
    client.transfer = AsyncMock(return_value="ab" * 32)
    client.close = AsyncMock()
    return client


class TestLoadMnemonic:
    def test_argument_wins(self, monkeypatch):
        monkeypatch.setenv("MNEMONIC", "from env")
        assert load_mnemonic("from arg", None) == "from arg"

    def test_file(self, tmp_path):
        path = tmp_path / "seed.txt"
        path.write_text(MNEMONIC + "\n")
        assert load_mnemonic(None, path) == MNEMONIC

    def test_env_file_before_env(self, tmp_path, monkeypatch):
        path = tmp_path / "seed.txt"
        path.write_text("from file")
        monkeypatch.setenv("MNEMONIC_FILE", str(path))
        monkeypatch.setenv("MNEMONIC", "from env")
        assert load_mnemonic(None, None) == "from file"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_mnemonic(None, tmp_path / "nope.txt")

    def test_nothing_available(self):
        with pytest.raises(ValueError, match="Mnemonic required"):
            load_mnemonic(None, None)


class TestAddressCommand:
    def test_derives_first_address(self):
        result = runner.invoke(app, ["address", "--mnemonic", MNEMONIC, "--network", "mainnet"])
        assert result.exit_code == 0
        assert ADDRESS_0 in result.stdout

    def test_segwit(self):
        result = runner.invoke(
            app, ["address", "--mnemonic", MNEMONIC, "-n", "mainnet", "--type", "p2wpkh"]
        )
        assert result.exit_code == 0
        assert "bc1qcr8te4kr609gcawutmrza0j4xv80jy8z306fyu" in result.stdout

    def test_mnemonic_from_env(self, monkeypatch):
        monkeypatch.setenv("MNEMONIC", MNEMONIC)
        result = runner.invoke(app, ["address", "-n", "mainnet"])
        assert result.exit_code == 0
        assert ADDRESS_0 in result.stdout

    def test_missing_mnemonic(self):
        result = runner.invoke(app, ["address"])
        assert result.exit_code == 1

    def test_invalid_mnemonic(self):
        result = runner.invoke(app, ["address", "--mnemonic", "abandon " * 12])
        assert result.exit_code == 1

    def test_invalid_network(self):
        result = runner.invoke(app, ["address", "--mnemonic", MNEMONIC, "-n", "moonnet"])
        assert result.exit_code == 1


class TestValidateCommand:
    def test_valid(self):
        result = runner.invoke(app, ["validate", ADDRESS_0, "--network", "mainnet"])
        assert result.exit_code == 0
        assert "is a valid mainnet address" in result.stdout

    def test_wrong_network(self):
        result = runner.invoke(app, ["validate", ADDRESS_0, "--network", "testnet"])
        assert result.exit_code == 1
        assert "NOT a valid" in result.stdout


def test_fees_command(mock_client: MagicMock):
    with patch("xchainwallet.cli.build_client", return_value=mock_client):
        result = runner.invoke(app, ["fees", "--memo", "hello"])

    assert result.exit_code == 0
    mock_client.get_fees.assert_awaited_once_with("hello")
    mock_client.close.assert_awaited_once()
    assert "fastest" in result.stdout
    assert "3,900" in result.stdout


class TestSendCommand:
    def test_send(self, mock_client: MagicMock):
        with patch("xchainwallet.cli.build_client", return_value=mock_client):
            result = runner.invoke(
                app,
                [
                    "send",
                    "--to",
                    ADDRESS_0,
                    "--amount",
                    "5000",
                    "--fee-rate",
                    "3",
                    "--mnemonic",
                    MNEMONIC,
                    "-n",
                    "mainnet",
                ],
            )

        assert result.exit_code == 0
        assert "ab" * 32 in result.stdout
        args, kwargs = mock_client.transfer.await_args
        context, destination, amount = args
        assert context.address(0) == ADDRESS_0
        assert (destination, amount) == (ADDRESS_0, 5000)
        assert kwargs["fee_rate"] == 3.0
        assert kwargs["memo"] is None
        assert kwargs["spend_unconfirmed"] is None
        mock_client.close.assert_awaited_once()

    def test_send_failure_exits_nonzero(self, mock_client: MagicMock):
        mock_client.transfer.side_effect = InsufficientBalanceError(10_000, 500)
        with patch("xchainwallet.cli.build_client", return_value=mock_client):
            result = runner.invoke(
                app, ["send", "--to", ADDRESS_0, "--amount", "10000", "--mnemonic", MNEMONIC]
            )

        assert result.exit_code == 1
        mock_client.close.assert_awaited_once()

    def test_send_without_mnemonic(self, mock_client: MagicMock):
        with patch("xchainwallet.cli.build_client", return_value=mock_client):
            result = runner.invoke(app, ["send", "--to", ADDRESS_0, "--amount", "1"])
        assert result.exit_code == 1
        mock_client.transfer.assert_not_called()


class TestQueryCommands:
    def test_balance(self, mock_client: MagicMock):
        mock_client.get_balance = AsyncMock(
            return_value=[Balance(asset=AssetBTC, amount=1_234_567)]
        )
        with patch("xchainwallet.cli.build_client", return_value=mock_client):
            result = runner.invoke(app, ["balance", ADDRESS_0, "-n", "mainnet"])

        assert result.exit_code == 0
        assert "BTC.BTC: 1,234,567" in result.stdout
        mock_client.close.assert_awaited_once()

    def test_backend_unreachable_exits_nonzero(self, mock_client: MagicMock):
        mock_client.get_balance = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("xchainwallet.cli.build_client", return_value=mock_client):
            result = runner.invoke(app, ["balance", ADDRESS_0])

        assert result.exit_code == 1
        assert not isinstance(result.exception, httpx.HTTPError)
        mock_client.close.assert_awaited_once()

    def test_history(self, mock_client: MagicMock):
        tx = Tx(
            asset=AssetBTC,
            from_=[TxFrom(from_address="1other", amount=9000)],
            to=[TxTo(to_address=ADDRESS_0, amount=8000)],
            date=datetime(2024, 1, 2, 3, 4, tzinfo=UTC),
            hash="cd" * 32,
        )
        mock_client.get_transactions = AsyncMock(return_value=TxsPage(total=1, txs=[tx]))
        with patch("xchainwallet.cli.build_client", return_value=mock_client):
            result = runner.invoke(app, ["history", ADDRESS_0, "--limit", "5"])

        assert result.exit_code == 0
        mock_client.get_transactions.assert_awaited_once_with(ADDRESS_0, offset=0, limit=5)
        assert "Total transactions: 1" in result.stdout
        assert "2024-01-02 03:04" in result.stdout
        assert "+8,000" in result.stdout
