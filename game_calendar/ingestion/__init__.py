"""
Ingestion layer: bounded HTTP fetches and upstream code discovery.

Submodules:
  http       : fetch_json / fetch_text on a shared httpx.AsyncClient, plus the
               UpstreamError family (status, timeout, payload)
  discovery  : EndfieldCodeResolver (override → cached → scraped → fallback)

Upstream URL overrides (.env or environment):
  GENSHIN_API_URL, STARRAIL_API_URL, ZZZ_API_URL, KURO_WIKI_HOME_URL, ...
  ENDFIELD_CODE     : pins the Endfield bulletin code and skips discovery
"""
