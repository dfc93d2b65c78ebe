"""Simulated CPU with paged MMU and TLB, plus I/O interfaces and the DialFS block file system."""

__version__ = "0.1.0"