"""
Matching core: the deterministic decision stages.

Modules
-------
keywords    : pain-point and technology-name matching rules.
prefilter   : stage 1, relevance scoring and hard rejects.
maturity    : stage 2, maturity gate, deprecation signals, action downgrade.
calibration : effort calibration from adoption history.
stability   : stage 4, cost of change vs cost of no-change verdict.
confidence  : knowledge-qualification confidence of a recommendation.
ranker      : stage 5, recommendation assembly, dedup, ordering, cap.

All modules are pure: no I/O, no network.  Time-dependent functions take an
``as_of`` timestamp and only read the clock when it is omitted.
"""
