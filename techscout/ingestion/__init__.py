"""
Ingestion layer — the validated boundary between storage/files and the core.

Submodules:
  profile_builder — storage rows → validated ProjectProfile
  feed_loader     — JSON files → FeedItem list, ProjectProfile, adoption history

Nothing past this layer sees raw dicts: malformed profiles raise
``ProfileValidationError`` here instead of being coerced inside the core.
"""
