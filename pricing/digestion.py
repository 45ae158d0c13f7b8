r"""
News digestion model.

A news item does not hit the fundamental value all at once. The market
"digests" it linearly over its duration L. Permanent news then stays fully
priced in forever; temporary news decays linearly back to zero over the
next L days, for a total lifetime of 2L days.

    weight
      1 |      ______________  permanent
        |     /\
        |    /  \              temporary
        |   /    \
      0 |__/      \__________
           t0  t0+L  t0+2L
"""


def digestion_factor(
    day: int,
    trigger_day: int,
    duration: int,
    is_permanent: bool,
) -> float:
    """
    Weight in [0, 1] of a news item on a given day.

    Args:
        day: Current simulation day
        trigger_day: Day the news was released (t0)
        duration: Digestion period L in days
        is_permanent: True if the effect never decays

    Returns:
        0 before release, a linear ramp up during digestion, 1 once
        permanent news is digested, and a linear ramp down for temporary news.
    """
    if day < trigger_day:
        return 0.0

    elapsed = day - trigger_day

    if is_permanent:
        if duration <= 0 or elapsed >= duration:
            return 1.0
        return min(1.0, (elapsed + 1) / duration)

    if duration <= 0:
        return 0.0

    if elapsed < duration:
        return min(1.0, (elapsed + 1) / duration)

    if elapsed < 2 * duration:
        return (2 * duration - elapsed) / duration

    return 0.0


def is_within_window(
    day: int,
    trigger_day: int,
    duration: int,
    is_permanent: bool,
) -> bool:
    """True while the item still contributes (or will contribute) to the price."""
    if day < trigger_day:
        return False
    if is_permanent:
        return True
    return duration > 0 and day - trigger_day < 2 * duration
