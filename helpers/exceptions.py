# This class is used for exceptions that can be directly displayed to the user
class UserFriendlyError(Exception):
    pass


# Base class for everything the ladder refuses to do
class LadderError(UserFriendlyError):
    pass


class InvalidPlayerError(LadderError):
    def __init__(self, msg="Player name is required.", *args, **kwargs):
        super().__init__(msg, *args, **kwargs)


class DuplicatePlayerError(LadderError):
    def __init__(self, msg="A player with this name already exists.", *args, **kwargs):
        super().__init__(msg, *args, **kwargs)


class PlayerNotFoundError(LadderError):
    def __init__(self, msg="Player not found.", *args, **kwargs):
        super().__init__(msg, *args, **kwargs)


# Used when a match submission breaks the rules: missing players, playing yourself, bad scores or a draw
class InvalidMatchError(LadderError):
    pass


class MatchNotFoundError(LadderError):
    def __init__(self, msg="Match not found.", *args, **kwargs):
        super().__init__(msg, *args, **kwargs)


# Raised when the rating history could not be rebuilt; the whole replay is safe to run again
class ReplayError(Exception):
    pass
