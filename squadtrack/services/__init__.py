"""
Business logic for the match lifecycle and growth tracking engine.

- temporal_validator: season and match date rules
- season_service / match_service: calendar lifecycle
- formations / lineup_service: formation vocabularies and slot assignment
- attribute_engine / stats_service: stats ingestion and the growth chain
- reflection_gate: reflection-gated feedback unlock
- growth_projector: chart geometry for snapshot history
- ai_suggestions: coach feedback to improvement suggestions
"""
