"""
Notes Client.

State-management core of the notes app: keeps the local notes collection
consistent with the remote store and derives the list, search and
selection views the presentation layer renders.
"""
