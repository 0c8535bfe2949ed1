"""
Global variables used for configuration. These will not change at runtime.
"""

"""Tag identifying RPC test helpers as the originator of a call"""
CALLER = "rpc-testing"

"""Invocation metadata key carrying the caller tag"""
CALLER_METADATA_KEY = "x-rpc-caller"

"""Time in seconds to wait for deferred responses"""
DEFAULT_TIMEOUT = 5.0

"""Attribute through which services expose their client"""
DEFAULT_CLIENT_ACCESSOR = "client"
