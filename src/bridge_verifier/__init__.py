"""Bridge verifier — trust-verification core for a cross-chain bridge.

Two verifier families decide whether a message from a remote network is
authentic: a BEEFY light client for networks with a finality gadget and
a multisig peer-set verifier for networks without one.
"""

__version__ = "0.4.0"
