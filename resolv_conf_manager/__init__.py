"""
resolv-conf-manager

Reconciles the system resolv.conf with an internally maintained list of DNS
servers and search domains, and atomically publishes a managed copy.
"""

__version__ = "1.0.0"
__author__ = "NixOS Configuration Team"
