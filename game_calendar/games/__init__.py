"""
Per-game pipelines. Each module exposes ``fetch_events(ctx)``; all but
endfield also expose ``fetch_current_version(ctx, now=None)``.

Submodules:
  base       : FetchContext, build/merge/sort helpers, stable_hash64
  gacha      : is_gacha_title keyword rules
  mihoyo     : shared getAnnList / getAnnContent parsing
  genshin, starrail, zzz : miHoYo announcement APIs
  ww         : Kuro wiki homepage and catalogue
  snowbreak  : Seasun announce feed (prose blocks)
  endfield   : Hypergryph bulletin aggregate
  registry   : GameId → pipeline dispatch
"""
