"""Rejection kinds for the verifier engines.

Every engine check is local and terminates the operation on the first
failure. The engines raise VerificationError carrying exactly one
ErrorKind; the service layer converts it into a failed ServiceResult.
A raised VerificationError never leaves partially applied state.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Closed set of rejection kinds."""
    # Lifecycle
    PALLET_NOT_INITIALIZED = "PalletNotInitialized"
    ALREADY_INITIALIZED = "AlreadyInitialized"
    # Identity / epoch mismatch
    INVALID_VALIDATOR_SET_ID = "InvalidValidatorSetId"
    PAYLOAD_BLOCKNUMBER_TOO_OLD = "PayloadBlocknumberTooOld"
    INVALID_NEXT_VALIDATOR_SET = "InvalidNextValidatorSet"
    # Evidence shape
    INVALID_NUMBER_OF_SIGNATURES = "InvalidNumberOfSignatures"
    INVALID_NUMBER_OF_POSITIONS = "InvalidNumberOfPositions"
    INVALID_NUMBER_OF_PUBLIC_KEYS = "InvalidNumberOfPublicKeys"
    # Cryptographic failure
    INVALID_SIGNATURE = "InvalidSignature"
    INVALID_VALIDATOR_SET_MERKLE_PROOF = "InvalidValidatorSetMerkleProof"
    INVALID_MMR_LEAF_PROOF = "InvalidMMRLeafProof"
    # Threshold failure
    NOT_ENOUGH_VALIDATOR_SIGNATURES = "NotEnoughValidatorSignatures"
    NOT_ENOUGH_SIGNATURES = "NotEnoughSignatures"
    # Bitfield integrity
    VALIDATOR_NOT_ONCE_IN_BITFIELD = "ValidatorNotOnceInBitfield"
    VALIDATOR_SET_INCORRECT_POSITION = "ValidatorSetIncorrectPosition"
    # Payload integrity
    MMR_PAYLOAD_NOT_FOUND = "MMRPayloadNotFound"
    # Peer-set integrity
    PEER_ALREADY_EXISTS = "PeerAlreadyExists"
    PEER_NOT_FOUND = "PeerNotFound"
    EMPTY_PEER_SET = "EmptyPeerSet"
    CANNOT_REMOVE_BELOW_THRESHOLD = "CannotRemoveBelowThreshold"
    TOO_MANY_PEERS = "TooManyPeers"
    # Dispatch / authorization
    WRONG_VERIFIER_FAMILY = "WrongVerifierFamily"
    BAD_ORIGIN = "BadOrigin"
    # Boundary
    INVALID_INPUT = "InvalidInput"
    PERSISTENCE_FAILURE = "PersistenceFailure"


class VerificationError(Exception):
    """Raised when a submission or mutation is rejected."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        message = kind.value if not detail else f"{kind.value}: {detail}"
        super().__init__(message)
