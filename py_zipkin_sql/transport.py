from typing import Optional
from typing import TYPE_CHECKING
from typing import Union

from py_zipkin_sql.encoding import decode_spans
from py_zipkin_sql.encoding import Encoding

if TYPE_CHECKING:  # pragma: no cover
    from py_zipkin_sql.storage import SQLStorage


class BaseTransportHandler:
    def get_max_payload_bytes(self) -> Optional[int]:  # pragma: no cover
        """Returns the maximum payload size for this transport.

        If you don't want to enforce a max payload size, return None.

        :returns: max payload size in bytes or None.
        """
        raise NotImplementedError("get_max_payload_bytes is not implemented")

    def send(self, payload: Union[bytes, str]) -> None:  # pragma: no cover
        """Sends the encoded payload over the transport.

        :argument payload: encoded list of spans.
        """
        raise NotImplementedError("send is not implemented")

    def __call__(self, payload: Union[bytes, str]) -> None:
        """Internal wrapper around `send`. Do not override.

        Transports are called like functions by tracers, decoupling the
        function developers override and what's called lets us add extra
        logic here without having the users update their code.
        """
        self.send(payload)


class SQLStorageTransport(BaseTransportHandler):
    def __init__(
        self, storage: "SQLStorage", encoding: Optional[Encoding] = None
    ) -> None:
        """A transport writing spans straight to the zipkin database,
        skipping the collector.

        It can be used as the `transport_handler` of a tracer emitting V1
        thrift or V1 JSON spans.

        :param storage: storage spans are written to.
        :type storage: SQLStorage
        :param encoding: encoding of the payloads. Detected on every payload
            when not set.
        :type encoding: Encoding
        """
        super().__init__()
        self.encoding = encoding
        self.consumer = storage.span_consumer()

    def get_max_payload_bytes(self) -> Optional[int]:
        return None

    def send(self, payload: Union[bytes, str]) -> None:
        self.consumer.accept(decode_spans(payload, self.encoding))
