"""
SSE Module - Realtime event stream.
"""
