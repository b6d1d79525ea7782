"""Resolver package for the GraphQL schema.

One module per entity; each function has the resolver signature
``(parent, args, info)``. ``peerql.graphql.schema`` binds them to fields.
"""
