"""
Khelinfo Backend

A caching proxy that polls the SportMonks cricket API on a per-resource
cadence, keeps the latest normalized snapshot of each resource in memory
and serves it to the Khelinfo frontend over HTTP.
"""

__version__ = "1.0.0"
__author__ = "Khelinfo Team"
