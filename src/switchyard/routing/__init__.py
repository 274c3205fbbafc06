"""Routing — pattern compiler, ordered route registry, and group tree.

Routes are compiled when registered and stored per method in declaration
order. The first route whose pattern matches a request wins.
"""
