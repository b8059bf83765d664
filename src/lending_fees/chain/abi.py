"""Minimal ABIs for Compound-style markets and Velodrome-style gauges."""

from web3 import Web3

COMPTROLLER_ABI = [
    {
        "inputs": [],
        "name": "getAllMarkets",
        "outputs": [{"internalType": "address[]", "name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    }
]

CTOKEN_ABI = [
    {
        "inputs": [],
        "name": "underlying",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "reserveFactorMantissa",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "name": "cashPrior", "type": "uint256"},
            {"indexed": False, "name": "interestAccumulated", "type": "uint256"},
            {"indexed": False, "name": "borrowIndex", "type": "uint256"},
            {"indexed": False, "name": "totalBorrows", "type": "uint256"},
        ],
        "name": "AccrueInterest",
        "type": "event",
    },
]

GAUGE_ABI = [
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "account", "type": "address"},
        ],
        "name": "lastEarn",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "account", "type": "address"},
        ],
        "name": "earned",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ACCRUE_INTEREST_TOPIC = Web3.to_hex(
    Web3.keccak(text="AccrueInterest(uint256,uint256,uint256,uint256)")
)
