#!/usr/bin/env python3
"""
Example 01: Check Launchtube credits.

Reads the remaining fee credits of your Launchtube token.

Usage:
    export LAUNCHTUBE_TOKEN=eyJ...
    python examples/01_check_credits.py
"""

import sys

from stellar_agent import RelayClient
from stellar_agent.config import RelayConfig
from stellar_agent.errors import StellarAgentError

try:
    relay = RelayClient.from_config(RelayConfig.from_env())
except StellarAgentError as e:
    print(f"Configuration problem: {e}")
    sys.exit(1)

with relay:
    account = relay.check_credits()

print(account.to_agent_summary())
print(f"Credits: {account.credits_remaining} stroops")
print(f"         {account.credits_xlm} XLM")
