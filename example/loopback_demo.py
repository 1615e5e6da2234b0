import asyncio
import logging

from qrtp import AsyncioScheduler, EventKind, Impairment, LoopbackLink, Protocol

TEXT = "The quick brown fox jumps over the lazy dog. " * 20

async def main():
    # Sender and receiver share one lossy in-memory link
    sched = AsyncioScheduler()
    link = LoopbackLink(sched,
                        forward=Impairment(loss_rate=0.3, seed=1),
                        backward=Impairment(loss_rate=0.2, failure_rate=0.1, seed=2),
                        airtime_ms=150)
    A = Protocol(link, sched)
    B = Protocol(link, sched)

    done = asyncio.Event()
    B.on(EventKind.COMPLETE, lambda e: print(f"B: complete, {len(e.data)} chars, crc {e.checksum}"))
    A.on(EventKind.ACK, lambda e: print(f"A: ack, {e.remaining} remaining"))
    A.on(EventKind.ALL_ACKNOWLEDGED, lambda e: done.set())

    B.configure_receiver()
    A.configure_sender(TEXT, chunk_size=64, cycle_interval_ms=100)

    try:
        await asyncio.wait_for(done.wait(), timeout=60)
        print("A: all acknowledged; match:", B.received_message() == TEXT)
    except asyncio.TimeoutError:
        print("A: gave up; acknowledged", A.acknowledged)
    finally:
        A.dispose()
        B.dispose()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(main())
