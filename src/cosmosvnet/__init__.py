"""cosmosvnet - Cosmos DB virtual network rule sample

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- Security by design (no credentials in code)
- Cleanup always attempted

The cosmosvnet CLI provisions a resource group, a virtual network with two
subnets and a Cosmos DB account restricted by virtual network rules, mutates
and lists those rules, then tears everything down.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
