"""newscache: two-tier data cache for the news client.

Memory tier backed by a JSON-file disk tier, with per-key TTL policies,
lazy expiration and write-behind persistence.
"""

__version__ = "1.0.0"
