"""Contract interfaces for the guess-number game and the student-id registry."""

GUESS_NUMBER_ADDRESS = "0xbb84615d927799939fc212d6203b747de8842be5"
STUDENT_REGISTRY_ADDRESS = "0xba0a0d62eebb40969f975e9573be7798ad7bb5c0"

WINNER_EVENT = "Winner"

GUESS_NUMBER_ABI = [
    {
        "constant": False,
        "inputs": [],
        "name": "guess",
        "outputs": [],
        "payable": True,
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [],
        "name": "register",
        "outputs": [],
        "payable": False,
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "payable": False,
        "stateMutability": "nonpayable",
        "type": "constructor",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "_winner", "type": "address"},
            {"indexed": False, "name": "_answer", "type": "uint256"},
        ],
        "name": WINNER_EVENT,
        "type": "event",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "query",
        "outputs": [
            {"name": "_left", "type": "uint256"},
            {"name": "_Right", "type": "uint256"},
        ],
        "payable": False,
        "stateMutability": "view",
        "type": "function",
    },
]

STUDENT_REGISTRY_ABI = [
    {
        "constant": False,
        "inputs": [{"name": "_id", "type": "string"}],
        "name": "sendmySID",
        "outputs": [{"name": "res", "type": "bool"}],
        "payable": False,
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"name": "_id", "type": "string"}],
        "name": "querymySID",
        "outputs": [{"name": "_yourID", "type": "address"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function",
    },
]
