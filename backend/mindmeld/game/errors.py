"""Typed failures raised by the lobby registry.

Every failure carries a short machine label (``code``) so the transport
layer can acknowledge it without parsing messages.
"""

from __future__ import annotations


class LobbyError(Exception):
    code = "lobby_error"
    default_message = "Lobby operation failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidNameError(LobbyError):
    code = "invalid_name"
    default_message = "Player name is required."


class InvalidWordError(LobbyError):
    code = "invalid_word"
    default_message = "Submitted word is invalid."


class LobbyNotFoundError(LobbyError):
    code = "lobby_not_found"
    default_message = "Lobby not found."


class GameInProgressError(LobbyError):
    code = "game_in_progress"
    default_message = "Game already in progress."


class LobbyFullError(LobbyError):
    code = "lobby_full"
    default_message = "Lobby is full."


class NotEnoughTeamsError(LobbyError):
    code = "not_enough_teams"
    default_message = "At least two full teams are required to start."


class NoActiveRoundError(LobbyError):
    code = "no_active_round"
    default_message = "No active round."


class PlayerNotFoundError(LobbyError):
    code = "player_not_found"
    default_message = "Player not found."


class NotYourTurnError(LobbyError):
    code = "not_your_turn"
    default_message = "It is not your turn."


class CodeGenerationError(LobbyError):
    code = "code_generation_failed"
    default_message = "Failed to generate a unique lobby code."


class RegistryClosedError(LobbyError):
    code = "registry_closed"
    default_message = "Server is shutting down."


class AlreadyInLobbyError(LobbyError):
    code = "already_in_lobby"
    default_message = "You are already in another lobby."
