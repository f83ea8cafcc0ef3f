"""Gateware modules for the handshake register."""

from .handshake_register import HandshakeRegister, DEFAULT_DATA_WIDTH
