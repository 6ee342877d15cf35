"""Minimal item-collection contract ABI: the reads the keeper needs plus the one mutation."""

MESSAGE_FIELDS = (
    "id",
    "author",
    "stake",
    "startTime",
    "B0",
    "uri",
    "contentHash",
    "likes",
    "dislikes",
    "feePot",
    "resolved",
    "nuked",
    "winnerSide",
    "sharePerVote",
    "seedFromStake",
)

_MESSAGE_TYPES = (
    "uint256",
    "address",
    "uint256",
    "uint256",
    "uint256",
    "string",
    "bytes32",
    "uint256",
    "uint256",
    "uint256",
    "bool",
    "bool",
    "uint8",
    "uint256",
    "uint256",
)


def _view(name: str, inputs: list[dict], outputs: list[dict]) -> dict:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": inputs,
        "outputs": outputs,
    }


_ID_INPUT = [{"internalType": "uint256", "name": "id", "type": "uint256"}]

GAME_ABI = [
    _view("activeMessageId", [], [{"internalType": "uint256", "name": "", "type": "uint256"}]),
    _view("modFlagged", _ID_INPUT, [{"internalType": "bool", "name": "", "type": "bool"}]),
    _view("moderationSigner", [], [{"internalType": "address", "name": "", "type": "address"}]),
    _view(
        "messages",
        _ID_INPUT,
        [
            {"internalType": typ, "name": name, "type": typ}
            for name, typ in zip(MESSAGE_FIELDS, _MESSAGE_TYPES)
        ],
    ),
    {
        "type": "function",
        "name": "setModerationFlag",
        "stateMutability": "nonpayable",
        "inputs": [
            {"internalType": "uint256", "name": "id", "type": "uint256"},
            {"internalType": "bool", "name": "flagged_", "type": "bool"},
        ],
        "outputs": [],
    },
]
