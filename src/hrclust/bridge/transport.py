import multiprocessing
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Optional, Sequence

import numpy as np

from hrclust.bridge.schema import ResultPayload, decode_results, encode_features
from hrclust.bridge.worker import compute
from hrclust.errors import ConfigurationError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


class Transport(ABC):
    """Moves one serialized payload across the boundary and blocks for the reply."""

    name: str = ""

    @abstractmethod
    def call(self, payload: bytes, request: dict[str, Any]) -> bytes:
        raise NotImplementedError


class InProcessTransport(Transport):
    name = 'inprocess'

    def call(self, payload: bytes, request: dict[str, Any]) -> bytes:
        return compute(payload, request)


class ProcessTransport(Transport):
    """Runs the worker in a separate interpreter process."""

    name = 'process'

    def __init__(self, start_method: str = 'spawn'):
        # Workers start from a fresh interpreter by default
        self.start_method = start_method

    def call(self, payload: bytes, request: dict[str, Any]) -> bytes:
        context = multiprocessing.get_context(self.start_method)
        with ProcessPoolExecutor(max_workers=1, mp_context=context) as executor:
            return executor.submit(compute, payload, request).result()


TRANSPORTS = {
    'inprocess': InProcessTransport,
    'process': ProcessTransport,
}


def get_transport(name: str) -> Transport:
    if name not in TRANSPORTS:
        raise ConfigurationError(f"unknown transport: {name}", stage='config', context={'choices': sorted(TRANSPORTS)})
    return TRANSPORTS[name]()


class Bridge:
    """Sends the feature matrix out and receives labels/coordinates back.

    Encoding, the transport round trip and decoding each fail fast on any shape
    or ordering mismatch.
    """

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport if transport is not None else InProcessTransport()

    def run(self, matrix: np.ndarray, ids: Sequence, request: dict[str, Any],
            feature_names: Optional[Sequence[str]] = None) -> ResultPayload:
        payload = encode_features(matrix, ids, feature_names)
        logger.debug(f"[+] Bridge -> {self.transport.name}: {len(payload)} bytes")
        reply = self.transport.call(payload, request)
        logger.debug(f"[+] Bridge <- {self.transport.name}: {len(reply)} bytes")
        return decode_results(reply, expected_ids=ids)
