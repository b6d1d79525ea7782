"""
HTTP application for peerql
"""
