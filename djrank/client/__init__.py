"""
Client Package - DJ Rank
djrank/client/__init__.py

Gateway implementations that reach the service over HTTP.
"""

from djrank.client.http_gateway import HttpPerformerGateway

__all__ = ["HttpPerformerGateway"]
