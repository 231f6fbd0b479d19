"""
Core pieces of the provider.

- handler_loader: Resolves a handler from a property bag's __provider source
- capabilities: The handler contract, its defaults and result types
- identity: Provider-identity guard for diff and update
- properties: Property bag conversion
- errors: Error kinds surfaced to the engine
- diagnostics: Self-logging to stderr
"""
