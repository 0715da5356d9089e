"""Collector functions.

Each collector is a plain ``collector(ctx, ...)`` function gated by its config
module flag; it reads one or more host data sources and writes the gauges its
module owns in ``metrics.spec``.
"""
