"""
Protocol interfaces for the provider.

The dispatcher doesn't know which transport delivers a call; the RPC app
translates JSON requests into dispatcher calls and results back.
"""
