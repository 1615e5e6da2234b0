"""
Link implementations:
- loopback: in-process lossy media for tests and demos
- zyre: Zyre group broadcast (imported on demand; needs the Zyre bindings)
"""

from .loopback import Impairment, LoopbackBackward, LoopbackForward, LoopbackLink

__all__ = ["Impairment", "LoopbackBackward", "LoopbackForward", "LoopbackLink"]
