"""Application layer for docledger.

Ports define the contracts the registry depends on; adapters provide the
built-in implementations wired together by :mod:`docledger.bootstrap`.
"""
