from datetime import date

import pytest

from conftest import ACCESS_TOKEN


def test_get_point_accounts(json_client, run):
    client, handler = json_client(
        {
            "point_accounts": [
                {
                    "id": 301,
                    "account_group": 999,
                    "account_type": "point",
                    "currency": "JPY",
                    "institution_entity_key": "fauxpoint",
                    "institution_account_name": "Faux Points",
                    "current_balance": 1200.0,
                    "aggregation_state": "success",
                    "aggregation_status": "success",
                }
            ]
        }
    )

    accounts = run(client, lambda c: c.get_point_accounts(ACCESS_TOKEN, per_page=20)).point_accounts

    assert accounts[0].id == 301
    assert accounts[0].current_balance == 1200.0
    assert handler.last.url.path == "/link/points/accounts.json"
    assert dict(handler.last.url.params) == {"per_page": "20"}


def test_get_point_account_transactions(json_client, run):
    client, handler = json_client(
        {"transactions": [{"id": 1, "amount": 50.0, "date": "2020-11-02T00:00:00+09:00", "account_id": 301}]}
    )

    txns = run(
        client, lambda c: c.get_point_account_transactions(ACCESS_TOKEN, 301, sort_by="desc", since=date(2020, 11, 1))
    ).transactions

    assert txns[0].amount == 50.0
    assert handler.last.url.path == "/link/points/accounts/301/transactions.json"
    assert dict(handler.last.url.params) == {"sort_by": "desc", "since": "2020-11-01"}


def test_get_point_expirations(json_client, run):
    client, handler = json_client(
        {
            "point_expirations": [
                {
                    "id": 11,
                    "account_id": 301,
                    "expiration_amount": 300.0,
                    "expiration_date": "2021-03-31",
                    "date": "2020-11-08T00:00:00+09:00",
                }
            ]
        }
    )

    expirations = run(client, lambda c: c.get_point_expirations(ACCESS_TOKEN, 301, page=1)).point_expirations

    assert expirations[0].expiration_date == date(2021, 3, 31)
    assert expirations[0].expiration_amount == 300.0
    assert handler.last.url.path == "/link/points/accounts/301/expirations.json"


def test_point_account_id_is_required(json_client, run):
    client, handler = json_client({})

    with pytest.raises(ValueError, match="account ID is required"):
        run(client, lambda c: c.get_point_expirations(ACCESS_TOKEN, ""))

    assert handler.requests == []


def test_get_point_expirations_since(json_client, run):
    client, handler = json_client({"point_expirations": []})

    run(client, lambda c: c.get_point_expirations(ACCESS_TOKEN, 123, per_page=5, since="2023-01-01"))

    assert dict(handler.last.url.params) == {"per_page": "5", "since": "2023-01-01"}


def test_get_point_expirations_rejects_bad_since(json_client, run):
    client, handler = json_client({"point_expirations": []})

    with pytest.raises(ValueError, match="since must be in format YYYY-MM-DD"):
        run(client, lambda c: c.get_point_expirations(ACCESS_TOKEN, 123, since="2023/01/01"))

    assert handler.requests == []
