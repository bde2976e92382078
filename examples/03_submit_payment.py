#!/usr/bin/env python3
"""
Example 03: Send a payment through Launchtube.

Compiles a payment intent, signs it with STELLAR_PRIVATE_KEY and lets
Launchtube pay the network fee.

Usage:
    export LAUNCHTUBE_TOKEN=eyJ...
    export STELLAR_PRIVATE_KEY=S...
    python examples/03_submit_payment.py GDEST... 1.5 "thanks"
"""

import sys

from stellar_agent import SubmissionOrchestrator
from stellar_agent.errors import ConfigurationError

if len(sys.argv) < 3:
    print("Usage: python examples/03_submit_payment.py <destination> <amount> [memo]")
    sys.exit(1)

try:
    orchestrator = SubmissionOrchestrator.from_env()
except ConfigurationError as e:
    print(f"Configuration problem: {e}")
    sys.exit(1)

intent = {
    "type": "payment",
    "destinationAccount": sys.argv[1],
    "amount": sys.argv[2],
    "asset": {"code": "XLM"},
}
if len(sys.argv) > 3:
    intent["memo"] = sys.argv[3]

result = orchestrator.compile_and_submit(intent)
print(result.to_agent_summary())
if not result.ok:
    sys.exit(2)
