"""Bingo domain services: rooms, teams, the game engine and mini-games.

HTTP routes and socket handlers import from here, keeping transport
concerns separated from the session state machine.
"""
