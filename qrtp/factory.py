from __future__ import annotations
from typing import Any, Optional, Union

from .channel import Link
from .options import ProtocolOptions
from .protocol import Protocol
from .scheduler import AsyncioScheduler, Scheduler

def Qrtp(peer_id: str = "qrtp",
         *,
         transport: Union[str, Link, None] = "loopback",
         scheduler: Optional[Scheduler] = None,
         codec: Union[str, Any] = "header",
         options: Optional[ProtocolOptions] = None,
         **transport_kwargs) -> Protocol:
    """
    One-liner factory:
      Qrtp(transport="loopback", scheduler=VirtualScheduler())
      Qrtp("PeerA", transport="zyre", group="demo")            # inside a running asyncio loop
      Qrtp(transport=my_link, codec="msgpack")

    - peer_id: node name, used by network transports
    - transport: "loopback" | "zyre" | Link instance | None (drive parse_*/current_* by hand)
      "loopback" builds a private LoopbackLink owned by this peer; for two peers
      in one process build one LoopbackLink and pass the instance to both
    - scheduler: defaults to an AsyncioScheduler on the running loop
    - codec: "header" | "json" | "msgpack" | (forward, backward) codec pair
    - options: ProtocolOptions overriding timing and batching constants
    - **transport_kwargs: passed to the transport constructor
    """
    sched = scheduler or AsyncioScheduler()

    owns = isinstance(transport, str)
    if isinstance(transport, str):
        tlabel = transport.lower()
        if tlabel == "loopback":
            from .transports.loopback import LoopbackLink
            link: Optional[Link] = LoopbackLink(sched, **transport_kwargs)
        elif tlabel == "zyre":
            from .transports.zyre import ZyreLink
            link = ZyreLink(peer_id=peer_id, scheduler=sched, **transport_kwargs)
        else:
            raise ValueError(f"Unknown transport label: {transport}")
    else:
        link = transport

    return Protocol(link, sched, codec=codec, options=options, owns_link=owns)
