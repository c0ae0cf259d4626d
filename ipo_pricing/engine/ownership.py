"""
Post-IPO ownership and voting power.

Each holder's post-IPO position is its pre-IPO position less the shares it
sells in the offering. A synthetic public holder carries the public float
(new shares plus the secondary shares transferred from listed holders) with
one vote per share.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import List, Optional

from ipo_pricing.domain.types import FOUNDER, Holder, OwnershipEntry

PUBLIC_HOLDER = 'Public Shareholders'


@dataclass
class OwnershipTable:
  """
  Ownership table at one offer price.

  Attributes:
    entries: One entry per holder plus the public holder (last)
    fd_shares_post: Denominator for ownership fractions
    public_float: Shares held by the public after the offering
    voting_denominator: Sum of post-IPO shares x voting weight, incl. public
    founder_ownership: Aggregate founder post-IPO ownership
    founder_voting_power: Aggregate founder voting power
  """
  entries: List[OwnershipEntry] = field(default_factory=list)
  fd_shares_post: float = 0.0
  public_float: float = 0.0
  voting_denominator: float = 0.0
  founder_ownership: float = 0.0
  founder_voting_power: float = 0.0

  @property
  def total_ownership(self) -> float:
    return sum(e.post_ipo_ownership for e in self.entries)


def voting_weight(holder: Holder, dual_class: bool) -> float:
  """Votes per share: the class multiple under dual-class, else 1."""
  if dual_class and holder.voting_multiple:
    return holder.voting_multiple
  return 1.0


def compute_ownership(
    holders: Sequence[Holder],
    pre_ipo_shares: float,
    new_shares: float,
    dual_class: bool = False,
) -> OwnershipTable:
  """
  Compute pre/post ownership and voting power per holder.

  Args:
    holders: Pre-IPO capital structure
    pre_ipo_shares: Fully diluted pre-IPO share count
    new_shares: Dilutive shares issued (primary + greenshoe)
    dual_class: Whether voting multiples apply

  Returns:
    OwnershipTable with the public holder appended
  """
  fd_shares_post = pre_ipo_shares + new_shares
  transferred = sum(h.secondary_shares for h in holders)
  public_float = new_shares + transferred

  voting_denominator = public_float
  for h in holders:
    voting_denominator += h.post_ipo_shares * voting_weight(h, dual_class)

  def _fraction(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0

  table = OwnershipTable(fd_shares_post=fd_shares_post,
                         public_float=public_float,
                         voting_denominator=voting_denominator)

  for h in holders:
    post = h.post_ipo_shares
    votes = post * voting_weight(h, dual_class)
    entry = OwnershipEntry(
        holder=h.name,
        holder_type=h.holder_type,
        pre_ipo_shares=h.shares,
        post_ipo_shares=post,
        pre_ipo_ownership=_fraction(h.shares, pre_ipo_shares),
        post_ipo_ownership=_fraction(post, fd_shares_post),
        voting_power=_fraction(votes, voting_denominator),
    )
    table.entries.append(entry)
    if h.holder_type == FOUNDER:
      table.founder_ownership += entry.post_ipo_ownership
      table.founder_voting_power += entry.voting_power

  table.entries.append(
      OwnershipEntry(
          holder=PUBLIC_HOLDER,
          holder_type='public',
          pre_ipo_shares=0.0,
          post_ipo_shares=public_float,
          pre_ipo_ownership=0.0,
          post_ipo_ownership=_fraction(public_float, fd_shares_post),
          voting_power=_fraction(public_float, voting_denominator),
      ))
  return table


def ownership_warnings(
    table: OwnershipTable,
    tolerance: float,
    founder_floor: Optional[float] = None,
) -> list[str]:
  """
  Data-quality warnings for an ownership table.

  Args:
    table: Computed ownership table
    tolerance: Allowed deviation of the ownership sum from 100 %
    founder_floor: Minimum aggregate founder ownership, if configured

  Returns:
    List of warning strings (empty when the table is clean)
  """
  warnings = []
  total = table.total_ownership
  if abs(total - 1.0) > tolerance:
    warnings.append(
        f'Ownership percentages sum to {total * 100:.1f}% (should be 100%)')
  if founder_floor and table.founder_ownership < founder_floor:
    warnings.append(
        f'Founder ownership ({table.founder_ownership * 100:.1f}%) falls '
        f'below required minimum ({founder_floor * 100:.1f}%)')
  return warnings
