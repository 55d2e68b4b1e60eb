class Error(Exception):
    __slots__ = ("msg",)

    def __init__(self, msg: str):
        super().__init__()
        self.msg = msg

    def __str__(self):
        return self.msg

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self.msg)


class NotFoundError(Error):
    pass


class UnsupportedError(Error):
    pass


class SessionUnavailableError(Error):
    pass


class FormatError(Error):
    pass


class ParameterError(Error):
    pass


class ProtocolError(Error):
    pass


class ChannelDiscoveryError(ProtocolError):
    pass


class SettleAbortedError(Error):
    pass
