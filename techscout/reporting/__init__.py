"""
techscout.reporting — terminal formatting and flat-file export of run results.

Nothing here produces decisions; it only renders ``MatchingResult`` objects,
prefilter matches and calibration reports.

Modules:
  formatters — ASCII terminal formatters for Typer CLI commands.
  export     — JSON/CSV export helpers.
"""
