from datetime import date

from conftest import ACCESS_TOKEN


def test_get_investment_accounts(json_client, run):
    client, handler = json_client(
        {
            "accounts": [
                {
                    "id": 401,
                    "account_key": "inv-key-1",
                    "account_group": 555,
                    "account_type": "stock",
                    "currency": "JPY",
                    "institution_entity_key": "fauxsecurities",
                    "aggregation_state": "success",
                    "aggregation_status": "success",
                    "current_balance": 2500000.0,
                }
            ]
        }
    )

    accounts = run(client, lambda c: c.get_investment_accounts(ACCESS_TOKEN)).accounts

    assert accounts[0].account_type == "stock"
    assert handler.last.url.path == "/link/investments/accounts.json"


def test_get_investment_positions(json_client, run):
    client, handler = json_client(
        {
            "positions": [
                {
                    "id": 1,
                    "date": "2020-11-06",
                    "asset_class": "stock",
                    "ticker_code": "7203",
                    "name_raw": "TOYOTA MOTOR",
                    "currency": "JPY",
                    "tax_type": ["specific"],
                    "market_value": 720000.0,
                    "acquisition_value": 650000.0,
                    "profit": 70000.0,
                    "quantity": 100.0,
                }
            ]
        }
    )

    positions = run(client, lambda c: c.get_investment_positions(ACCESS_TOKEN, "inv-key-1", page=2)).positions

    assert positions[0].date == date(2020, 11, 6)
    assert positions[0].tax_type == ["specific"]
    assert handler.last.url.path == "/link/investments/accounts/inv-key-1/positions.json"
    assert handler.last.url.params["page"] == "2"


def test_get_investment_account_transactions(json_client, run):
    client, handler = json_client({"transactions": []})

    result = run(client, lambda c: c.get_investment_account_transactions(ACCESS_TOKEN, "inv-key-1", sort_key="date"))

    assert result.transactions == []
    assert handler.last.url.path == "/link/investments/accounts/inv-key-1/transactions.json"
    assert handler.last.url.params["sort_key"] == "date"


def test_positions_tolerate_nulls_and_keep_deprecated_fields(json_client, run):
    client, _ = json_client(
        {
            "positions": [
                {
                    "id": 2,
                    "date": "2023-01-06",
                    "ticker": "7203",
                    "tax_type": None,
                    "value": 700000.0,
                    "cost_basis": 600000.0,
                }
            ]
        }
    )

    position = run(client, lambda c: c.get_investment_positions(ACCESS_TOKEN, "inv-key-1")).positions[0]

    assert position.tax_type == []
    assert position.currency is None
    assert position.market_value is None
    assert (position.ticker, position.value, position.cost_basis) == ("7203", 700000.0, 600000.0)


def test_accounts_without_aggregation_fields(json_client, run):
    client, _ = json_client({"accounts": [{"id": 9, "account_key": "inv-key-2", "account_group": 1}]})

    account = run(client, lambda c: c.get_investment_accounts(ACCESS_TOKEN)).accounts[0]

    assert account.currency is None
    assert account.aggregation_state is None
