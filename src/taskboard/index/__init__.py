"""Search index layer — Pluggable full-text mirrors of the record store.

Built-in backends:
  - memory: in-process term index (development and tests)
  - meilisearch: MeiliSearch over its REST API (``httpx``)
  - opensearch: OpenSearch v2+ with ``query_string`` queries (``opensearch-py``)

Implement ``SearchIndex`` to mirror records into your own search backend.
"""
