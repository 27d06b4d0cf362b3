from orderdesk.models import PriceTierPreset, SalesPerson, Seller


def test_seed_commands(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["sellers", "create", "--name", "Green Leaf", "--code", "GREENLEAF"])
    assert result.exit_code == 0, result.output
    assert "PASS Created seller" in result.output
    seller = db_session.query(Seller).filter_by(code="GREENLEAF").one()

    result = runner.invoke(args=["sellers", "create", "--name", "Dup", "--code", "GREENLEAF"])
    assert result.exit_code != 0

    result = runner.invoke(args=[
        "sales-people", "create", "--seller-id", str(seller.id), "--name", "Sam Rivera", "--rate-bps", "500",
    ])
    assert result.exit_code == 0, result.output
    assert db_session.query(SalesPerson).filter_by(seller_id=seller.id).one().commission_rate_bps == 500

    result = runner.invoke(args=[
        "presets", "create", "--seller-id", str(seller.id), "--name", "Shake A",
        "--prices", "500,900,1600,2500,4500,8000,15000",
    ])
    assert result.exit_code == 0, result.output
    preset = db_session.query(PriceTierPreset).filter_by(seller_id=seller.id).one()
    assert preset.tier_3_point_5_gram_cents == 2500

    result = runner.invoke(args=["presets", "create", "--seller-id", str(seller.id), "--name", "Short", "--prices", "1,2"])
    assert result.exit_code != 0
    assert "Expected 7 prices" in result.output

    result = runner.invoke(args=["sellers", "list"])
    assert "GREENLEAF" in result.output
