#!/usr/bin/env python3
"""
Example 04: Run toolkit tools from the command line.

Dispatches a tool by name exactly the way an LLM framework would, which is
handy for checking what an agent will see.

Usage:
    python examples/04_cli_tool_runner.py list
    python examples/04_cli_tool_runner.py check_credits
    python examples/04_cli_tool_runner.py submit_transaction '{"type": "payment", "destinationAccount": "G...", "amount": "1"}'
"""

import json
import sys

from stellar_agent import HorizonNode, SubmissionOrchestrator
from stellar_agent.tools import StellarToolkit

node = HorizonNode()
toolkit = StellarToolkit(node, SubmissionOrchestrator.from_env())

command = sys.argv[1] if len(sys.argv) > 1 else "list"
if command == "list":
    for tool in toolkit.to_anthropic_tools():
        print(f"{tool['name']:24} {tool['description']}")
else:
    tool_input = json.loads(sys.argv[2]) if len(sys.argv) > 2 else {}
    print(toolkit.execute_tool(command, tool_input))

node.close()
