"""
consul-sync -- move Consul KV data between a local and a staging cluster.

Snapshot the local store, export the staging store, and import a
filtered, prefix-rewritten slice of the export back into local.
Every import is preceded by a safety backup.
"""

__version__ = "0.1.0"

DEFAULT_EXPORT_FILE = "consul_export.json"
