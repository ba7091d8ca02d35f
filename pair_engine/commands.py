"""Command emitter: the only place client order ids are allocated.

The execution framework is reached through an `ExecutionGateway`, which
mirrors the three requests the exchange connectivity layer accepts.  Every
insert and hedge consumes the next id from a strictly increasing counter
that starts at 1 (0 is reserved for "no order").
"""

import logging
from typing import Protocol

from .models import Command, Lifespan, Side

log = logging.getLogger(__name__)


class ExecutionGateway(Protocol):
    def send_insert_order(self, client_order_id: int, side: Side, price: int,
                          volume: int, lifespan: Lifespan) -> None: ...

    def send_cancel_order(self, client_order_id: int) -> None: ...

    def send_hedge_order(self, client_order_id: int, side: Side, price: int,
                         volume: int) -> None: ...


class CommandEmitter:
    """Allocates ids and forwards requests to the gateway.

    `history` keeps every command in send order; replays and tests compare
    it directly.
    """

    def __init__(self, gateway: ExecutionGateway, first_order_id: int = 1):
        if first_order_id <= 0:
            raise ValueError("first_order_id must be positive (0 means no order)")
        self.gateway = gateway
        self._next_order_id = int(first_order_id)
        self.history: list[Command] = []

    @property
    def next_order_id(self) -> int:
        return self._next_order_id

    def _allocate(self) -> int:
        order_id = self._next_order_id
        self._next_order_id += 1
        return order_id

    def insert_order(self, side: Side, price: int, volume: int,
                     lifespan: Lifespan = Lifespan.GOOD_FOR_DAY) -> int:
        order_id = self._allocate()
        self.history.append(Command("insert", order_id, side, price, volume, lifespan))
        self.gateway.send_insert_order(order_id, side, price, volume, lifespan)
        log.info("sending %s order %d: %d lots at %d", side.name.lower(), order_id, volume, price)
        return order_id

    def cancel_order(self, order_id: int) -> None:
        self.history.append(Command("cancel", order_id))
        self.gateway.send_cancel_order(order_id)
        log.info("order %d cancelled", order_id)

    def hedge_order(self, side: Side, price: int, volume: int) -> int:
        order_id = self._allocate()
        self.history.append(Command("hedge", order_id, side, price, volume))
        self.gateway.send_hedge_order(order_id, side, price, volume)
        log.info("sending hedge %s order %d: %d lots at %d", side.name.lower(), order_id, volume, price)
        return order_id
