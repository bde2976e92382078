#!/usr/bin/env python3
"""
Example 02: Check an account balance.

Connects to the public testnet Horizon and reads the balances of any account.
No keys or relay token required.

Usage:
    python examples/02_account_balance.py GA5ZSEJYB37JRC5AVCIA5MOP4RHTM335X2KGX3IHOJAPP5RE34K4KZVN
"""

import sys

from stellar_agent import HorizonNode
from stellar_agent.core.address import is_valid_address

if len(sys.argv) < 2 or not is_valid_address(sys.argv[1]):
    print("Usage: python examples/02_account_balance.py <G... account ID>")
    sys.exit(1)

address = sys.argv[1]

with HorizonNode() as node:
    state = node.get_balance(address)

if not state.exists:
    print(f"{address} does not exist on testnet (fund it with friendbot first)")
    sys.exit(0)

print(f"Account:  {address[:16]}...")
print(f"Sequence: {state.sequence}")
print(f"XLM:      {state.native_balance}")
for b in state.balances:
    if not b.asset.is_native:
        issuer = (b.asset.issuer or "")[:8]
        print(f"{b.asset.label}: {b.balance} (issuer {issuer}...)")
