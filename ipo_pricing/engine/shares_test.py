import pytest

from ipo_pricing.domain.types import Holder
from ipo_pricing.engine.shares import compute_share_mechanics
from ipo_pricing.engine.shares import dilution_ratio
from ipo_pricing.engine.shares import enterprise_value
from ipo_pricing.engine.shares import resolve_secondary_shares


class TestDollarDenominatedRaise:
  """Share counts recomputed from a currency target."""

  def test_scenario_a(self):
    """$200M at $20 on 100M shares: 10M primary, 9.09% dilution."""
    mech = compute_share_mechanics(offer_price=20.0,
                                   pre_ipo_shares=100.0,
                                   primary_raise=200.0)

    assert mech.primary_shares == pytest.approx(10.0)
    assert mech.dilution == pytest.approx(10.0 / 110.0)
    assert mech.fd_shares_post == pytest.approx(110.0)

  def test_shares_fall_as_price_rises(self):
    """Gross primary proceeds stay fixed while shares fall."""
    low = compute_share_mechanics(20.0, 100.0, primary_raise=200.0)
    high = compute_share_mechanics(25.0, 100.0, primary_raise=200.0)

    assert high.primary_shares == pytest.approx(8.0)
    assert high.primary_shares < low.primary_shares
    assert high.gross_primary_proceeds == pytest.approx(
        low.gross_primary_proceeds)

  def test_explicit_greenshoe_ignored(self):
    """Explicit greenshoe shares only apply to share-denominated raises."""
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   primary_raise=200.0,
                                   greenshoe_percent=0.10,
                                   greenshoe_shares=5.0)

    assert mech.greenshoe_shares == pytest.approx(1.0)


class TestShareDenominatedRaise:
  """Fixed share counts."""

  def test_proceeds_increase_with_price(self):
    """Gross proceeds scale with the offer price."""
    low = compute_share_mechanics(20.0, 100.0, primary_shares=10.0)
    high = compute_share_mechanics(25.0, 100.0, primary_shares=10.0)

    assert low.gross_proceeds == pytest.approx(200.0)
    assert high.gross_proceeds == pytest.approx(250.0)

  def test_explicit_greenshoe_overrides_percent(self):
    """Explicit greenshoe shares win over the percent."""
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   primary_shares=10.0,
                                   greenshoe_percent=0.15,
                                   greenshoe_shares=3.0)

    assert mech.greenshoe_shares == 3.0


class TestGreenshoeBase:
  """Greenshoe sizing options."""

  def test_base_offering(self):
    """15% of primary + secondary."""
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   primary_shares=10.0,
                                   secondary_shares=5.0,
                                   greenshoe_percent=0.15)

    assert mech.greenshoe_shares == pytest.approx(2.25)

  def test_primary_only(self):
    """15% of primary shares only."""
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   primary_shares=10.0,
                                   secondary_shares=5.0,
                                   greenshoe_percent=0.15,
                                   greenshoe_base='primary')

    assert mech.greenshoe_shares == pytest.approx(1.5)

  def test_unknown_base_raises(self):
    """Unknown greenshoe base is a programming error."""
    with pytest.raises(ValueError, match='Unknown greenshoe base'):
      compute_share_mechanics(20.0, 100.0, primary_shares=10.0,
                              greenshoe_base='total')


class TestSecondary:
  """Secondary tranche resolution."""

  def test_scenario_b(self):
    """Holder with 20M shares selling 40% sells 8M and keeps 12M."""
    holder = Holder('Fund', 20.0, 'investor', secondary_fraction=0.40)
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   holders=[holder],
                                   primary_shares=10.0)

    assert holder.secondary_shares == pytest.approx(8.0)
    assert holder.post_ipo_shares == pytest.approx(12.0)
    assert mech.secondary_shares == pytest.approx(8.0)
    assert mech.secondary_source == 'holders'

  def test_secondary_not_dilutive(self):
    """Only primary and greenshoe shares dilute."""
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   primary_shares=10.0,
                                   secondary_shares=30.0,
                                   greenshoe_percent=0.10)

    assert mech.dilutive_shares == pytest.approx(10.0 + 4.0)
    assert mech.total_shares_sold == pytest.approx(44.0)

  def test_holder_fractions_take_precedence(self):
    """Per-holder fractions override a direct total."""
    holders = [Holder('Fund', 50.0, secondary_fraction=0.1)]
    shares, source = resolve_secondary_shares(20.0, holders, 30.0, 100.0)

    assert shares == pytest.approx(5.0)
    assert source == 'holders'

  def test_direct_then_currency(self):
    """Direct total beats a currency target; currency converts at price."""
    assert resolve_secondary_shares(20.0, [], 30.0, 100.0) == (30.0, 'direct')
    shares, source = resolve_secondary_shares(20.0, [], None, 100.0)
    assert shares == pytest.approx(5.0)
    assert source == 'currency'

  def test_no_secondary(self):
    """No plan means no secondary shares."""
    assert resolve_secondary_shares(20.0, [Holder('A', 10.0)]) == (0.0, 'none')


class TestProceedsAndBalanceSheet:
  """Net proceeds, cash and EV."""

  def test_net_proceeds_and_debt_repayment(self):
    """Fee comes off both tranches; repayment reduces cash and debt."""
    mech = compute_share_mechanics(20.0,
                                   100.0,
                                   primary_shares=10.0,
                                   secondary_shares=5.0,
                                   underwriting_fee=0.07,
                                   cash=50.0,
                                   debt=100.0,
                                   debt_repayment=30.0)

    assert mech.net_issuer_proceeds == pytest.approx(186.0)
    assert mech.net_seller_proceeds == pytest.approx(93.0)
    assert mech.post_ipo_cash == pytest.approx(206.0)
    assert mech.post_ipo_debt == pytest.approx(70.0)

  def test_debt_floored_at_zero(self):
    """Repaying more than outstanding debt leaves zero debt."""
    mech = compute_share_mechanics(20.0, 100.0, primary_shares=10.0,
                                   debt=100.0, debt_repayment=150.0)

    assert mech.post_ipo_debt == 0.0

  def test_enterprise_value_identity(self):
    """EV = market cap + debt - cash."""
    mech = compute_share_mechanics(20.0, 100.0, primary_shares=10.0,
                                   cash=50.0, debt=100.0)

    assert mech.market_cap == pytest.approx(2200.0)
    assert mech.enterprise_value == pytest.approx(
        mech.market_cap + mech.post_ipo_debt - mech.post_ipo_cash)
    assert enterprise_value(2200.0, 100.0, 250.0) == pytest.approx(2050.0)

  def test_non_positive_price_raises(self):
    """Offer price must be positive."""
    with pytest.raises(ValueError, match='offer_price must be positive'):
      compute_share_mechanics(0.0, 100.0, primary_shares=10.0)


def test_dilution_ratio():
  """Dilutive shares over the post-issuance count."""
  assert dilution_ratio(10.0, 100.0) == pytest.approx(10.0 / 110.0)
  assert dilution_ratio(0.0, 100.0) == 0.0
