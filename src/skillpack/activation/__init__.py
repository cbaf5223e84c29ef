"""Activation matching for skill packages.

Example usage:
    from skillpack.activation import ActivationMatcher, ActivationQuery

    matcher = ActivationMatcher()
    candidates = matcher.match(ActivationQuery("convert my stack to Pulumi"), index)
"""

from skillpack.activation.matcher import ActivationMatcher, ActivationQuery, ScoredCandidate

__all__ = [
    "ActivationMatcher",
    "ActivationQuery",
    "ScoredCandidate",
]
