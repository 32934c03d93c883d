"""
ksu-setup - integrate the KernelSU kernel module into an Android kernel tree.

This package provides tools for cloning and updating the KernelSU repository,
checking out a requested revision, and wiring the module into the kernel's
drivers Makefile and Kconfig (and reverting those edits).
"""

__version__ = "0.1.0"
