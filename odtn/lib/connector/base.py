import sys

from odtn.lib.errors import UnsupportedError


class Session(object):
    """NETCONF-style request/reply session with a single device.

    Subclasses implement the operations their transport supports. The
    remaining ones raise UnsupportedError.
    """

    @property
    def type(self):
        return "base"

    def rpc(self, request):
        fname = sys._getframe().f_code.co_name
        raise UnsupportedError(f"{fname}() not supported by {self.type} session")

    def edit_config(self, target, default_operation, config):
        fname = sys._getframe().f_code.co_name
        raise UnsupportedError(f"{fname}() not supported by {self.type} session")

    def commit(self):
        fname = sys._getframe().f_code.co_name
        raise UnsupportedError(f"{fname}() not supported by {self.type} session")

    def get(self, filter):
        fname = sys._getframe().f_code.co_name
        raise UnsupportedError(f"{fname}() not supported by {self.type} session")

    def get_config(self, source, filter):
        fname = sys._getframe().f_code.co_name
        raise UnsupportedError(f"{fname}() not supported by {self.type} session")

    def close(self):
        pass
