"""
Services module for the intent-signal batch jobs.

- intent_pipeline_service: crawl and search pipeline runs
- intent_persistence_service: idempotent signal/intent writes
- intent_maintenance_service: purge of errored rows and statistics
- signal_sources: job aggregator crawler and web search source
"""
