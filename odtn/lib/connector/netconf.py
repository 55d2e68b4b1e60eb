from .base import Session as BaseSession

import logging
import threading

from ncclient import manager, NCClientError
from ncclient.operations import RPCError
from lxml import etree

from odtn.lib.errors import Error, ProtocolError, SessionUnavailableError


logger = logging.getLogger(__name__)


def str2bool(d, key):
    v = d.get(key)
    if v == "false":
        d[key] = False
    elif v == "true":
        d[key] = True


class Session(BaseSession):
    def __init__(self, **kwargs):
        if "host" not in kwargs:
            raise Error("missing host option")
        str2bool(kwargs, "hostkey_verify")
        self._connect_args = kwargs
        try:
            self.netconf_conn = manager.connect(**self._connect_args)
        except NCClientError as e:
            raise SessionUnavailableError(
                f"failed to connect to {kwargs['host']}: {e}"
            ) from e
        assert self.netconf_conn != None

    @property
    def type(self):
        return "netconf"

    def rpc(self, request):
        try:
            root = etree.fromstring(request.encode())
        except etree.XMLSyntaxError as e:
            raise ProtocolError(f"malformed request: {e}") from e
        if len(root) != 1:
            raise ProtocolError("request must contain exactly one operation")
        logger.debug(f"request: {request}")
        try:
            reply = self.netconf_conn.dispatch(root[0])
        except RPCError as e:
            raise ProtocolError(f"rpc failed: {e.message}") from e
        except NCClientError as e:
            raise ProtocolError(f"rpc failed: {e}") from e
        logger.debug(f"reply: {reply.xml}")
        return reply.xml

    def edit_config(self, target, default_operation, config):
        logger.debug(f"edit-config {target=}, {default_operation=}: {config}")
        try:
            reply = self.netconf_conn.edit_config(
                config=config, target=target, default_operation=default_operation
            )
        except RPCError as e:
            raise ProtocolError(f"edit-config failed: {e.message}") from e
        except NCClientError as e:
            raise ProtocolError(f"edit-config failed: {e}") from e
        return reply.ok

    def commit(self):
        try:
            self.netconf_conn.commit()
        except RPCError as e:
            raise ProtocolError(f"commit failed: {e.message}") from e
        except NCClientError as e:
            raise ProtocolError(f"commit failed: {e}") from e

    def discard_changes(self):
        try:
            self.netconf_conn.discard_changes()
        except NCClientError as e:
            raise ProtocolError(f"discard-changes failed: {e}") from e

    def get(self, filter):
        try:
            v = self.netconf_conn.get(filter=("subtree", filter))
        except RPCError as e:
            raise ProtocolError(f"get failed: {e.message}") from e
        except NCClientError as e:
            raise ProtocolError(f"get failed: {e}") from e
        logger.debug(f"data_xml: {v.data_xml}")
        return v.xml

    def get_config(self, source, filter):
        try:
            v = self.netconf_conn.get_config(source=source, filter=("subtree", filter))
        except RPCError as e:
            raise ProtocolError(f"get-config failed: {e.message}") from e
        except NCClientError as e:
            raise ProtocolError(f"get-config failed: {e}") from e
        logger.debug(f"data_xml: {v.data_xml}")
        return v.xml

    def close(self):
        try:
            self.netconf_conn.close_session()
        except NCClientError as e:
            logger.warning(f"failed to close session: {e}")


class NetconfController(object):
    """Registry of NETCONF sessions keyed by device id."""

    def __init__(self, session_factory=Session):
        self._session_factory = session_factory
        self._sessions = {}
        self._lock = threading.Lock()

    def connect(self, device_id, **kwargs):
        session = self._session_factory(**kwargs)
        with self._lock:
            old = self._sessions.get(device_id)
            self._sessions[device_id] = session
        if old != None:
            old.close()
        logger.info(f"connected to {device_id}")
        return session

    def add_session(self, device_id, session):
        with self._lock:
            self._sessions[device_id] = session

    def get_session(self, device_id):
        with self._lock:
            session = self._sessions.get(device_id)
        if session == None:
            raise SessionUnavailableError(f"no netconf session for {device_id}")
        return session

    def disconnect(self, device_id):
        with self._lock:
            session = self._sessions.pop(device_id, None)
        if session != None:
            session.close()
            logger.info(f"disconnected from {device_id}")

    @property
    def devices(self):
        with self._lock:
            return list(self._sessions.keys())
