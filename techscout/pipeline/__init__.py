"""
Pipeline layer — sequencing of the matching stages.

Submodules:
  orchestrator — MatchingOrchestrator (run / run_many), MatchingContext,
                 MatchingSummary, MatchingResult
"""
