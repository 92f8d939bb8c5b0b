import pytest


@pytest.fixture
def make_investment(client, auth_headers):
    def _make(expected_status=201, **payload):
        response = client.post("/investments/", headers=auth_headers, json=payload)
        assert response.status_code == expected_status, response.text
        return response.json()
    return _make


@pytest.fixture
def petr(make_investment):
    return make_investment(symbol=" petr4 ", name="Petrobras", type="stock", sector="Energy",
                           quantity="100", average_price="30.00", current_price="36.00")


class TestInvestments:
    def test_create_computes_metrics(self, petr):
        assert petr["symbol"] == "PETR4"
        assert petr["type"] == "STOCK"
        assert petr["total_invested"] == 3000.0
        assert petr["current_value"] == 3600.0
        assert petr["gain_loss"] == 600.0
        assert petr["gain_loss_percentage"] == 20.0

    def test_current_price_defaults_to_average(self, make_investment):
        body = make_investment(symbol="IVVB11", name="S&P 500", type="ETF", quantity="10", average_price="250.00")
        assert body["current_price"] == 250.0
        assert body["gain_loss"] == 0.0

    def test_duplicate_symbol(self, petr, make_investment):
        make_investment(expected_status=409, symbol="PETR4", name="Again", type="STOCK",
                        quantity="1", average_price="1")

    def test_invalid_type(self, make_investment):
        make_investment(expected_status=422, symbol="X", name="X", type="BEANS", quantity="1", average_price="1")

    def test_update_price(self, client, auth_headers, petr):
        response = client.patch(f"/investments/{petr['id']}", headers=auth_headers, json={"current_price": "24.00"})
        assert response.status_code == 200
        assert response.json()["gain_loss"] == -600.0

    def test_filters(self, client, auth_headers, petr, make_investment):
        make_investment(symbol="TESOURO", name="Tesouro Selic", type="BOND", quantity="1", average_price="100")
        assert [i["symbol"] for i in client.get("/investments/?type=bond", headers=auth_headers).json()] == ["TESOURO"]
        assert [i["symbol"] for i in client.get("/investments/?sector=Energy", headers=auth_headers).json()] == ["PETR4"]
        assert [i["symbol"] for i in client.get("/investments/?search=selic", headers=auth_headers).json()] == ["TESOURO"]

    def test_delete(self, client, auth_headers, petr):
        assert client.delete(f"/investments/{petr['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/investments/{petr['id']}", headers=auth_headers).status_code == 404


class TestDividends:
    def test_dividends_feed_yield(self, client, auth_headers, petr):
        for payment_date, amount in (("2024-02-15", "60.00"), ("2024-05-15", "90.00")):
            response = client.post(f"/investments/{petr['id']}/dividends", headers=auth_headers, json={
                "amount": amount, "payment_date": payment_date, "type": "jcp"
            })
            assert response.status_code == 201
            assert response.json()["type"] == "JCP"

        investment = client.get(f"/investments/{petr['id']}", headers=auth_headers).json()
        assert investment["total_dividends"] == 150.0
        assert investment["dividend_yield"] == 5.0
        assert investment["last_dividend_date"] == "2024-05-15"

    def test_dividend_listing(self, client, auth_headers, petr):
        for payment_date in ("2023-12-10", "2024-02-15", "2024-02-20"):
            client.post(f"/investments/{petr['id']}/dividends", headers=auth_headers, json={
                "amount": "10.00", "payment_date": payment_date
            })

        body = client.get("/investments/dividends?year=2024", headers=auth_headers).json()
        assert [d["payment_date"] for d in body["data"]] == ["2024-02-20", "2024-02-15"]
        assert body["summary"]["total"] == 20.0
        assert body["summary"]["by_month"] == [{"month": "2024-02", "total": 20.0}]
        assert body["summary"]["by_investment"][0]["symbol"] == "PETR4"

        body = client.get("/investments/dividends?year=2024&month=3", headers=auth_headers).json()
        assert body["data"] == []
        assert body["summary"]["average"] == 0.0

    def test_dividend_for_unknown_investment(self, client, auth_headers):
        response = client.post("/investments/999/dividends", headers=auth_headers, json={
            "amount": "10.00", "payment_date": "2024-01-01"
        })
        assert response.status_code == 404


class TestPortfolio:
    def test_portfolio(self, client, auth_headers, petr, make_investment):
        make_investment(symbol="MGLU3", name="Magalu", type="STOCK", sector="Retail",
                        quantity="100", average_price="10.00", current_price="4.00")

        portfolio = client.get("/investments/portfolio", headers=auth_headers).json()
        summary = portfolio["summary"]
        assert summary["total_invested"] == 4000.0
        assert summary["current_value"] == 4000.0
        assert summary["gain_loss"] == 0.0
        assert summary["investment_count"] == 2

        assert portfolio["top_performers"][0]["symbol"] == "PETR4"
        assert portfolio["worst_performers"][0]["symbol"] == "MGLU3"
        by_type = portfolio["allocation"]["by_type"]
        assert by_type == [{
            "name": "STOCK", "count": 2, "total_invested": 4000.0, "current_value": 4000.0, "percentage": 100.0,
        }]
        sectors = {item["name"]: item["percentage"] for item in portfolio["allocation"]["by_sector"]}
        assert sectors == {"Energy": 90.0, "Retail": 10.0}
