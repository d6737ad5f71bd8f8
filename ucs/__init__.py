"""
ucs — upgradeable contract storage: namespaced slots, dictionary/proxy
forwarding and selector dispatch.

Public entrypoints (lazy, so `import ucs` stays cheap):

- __version__
- new_host(**kw) -> ucs.host.Host
    Fresh in-process engine.
- deploy_dictionary(host, owner) -> address
    Deploy a Dictionary and initialize its owner in one step.
- deploy_proxy(host, dictionary, *, strategy="resolve") -> address
    Deploy a Proxy pointing at `dictionary`.

Submodules: ucs.storage, ucs.abi, ucs.runtime, ucs.contracts, ucs.host,
ucs.examples, ucs.config, ucs.errors, ucs.logging.
"""

from __future__ import annotations

import importlib
from typing import Any, Optional

from .version import __version__


def version() -> str:
    return __version__


def new_host(**kwargs: Any):
    engine = importlib.import_module(".host.engine", __name__)
    return engine.Host(**kwargs)


def deploy_dictionary(host: Any, owner: int, *, sender: Optional[int] = None) -> int:
    abi = importlib.import_module(".abi", __name__)
    contracts = importlib.import_module(".contracts", __name__)
    return host.deploy(
        contracts.Dictionary(),
        sender=sender,
        init=abi.encode_call("initializeOwner(address)", owner),
    )


def deploy_proxy(host: Any, dictionary: int, *, strategy: str = "resolve", sender: Optional[int] = None) -> int:
    abi = importlib.import_module(".abi", __name__)
    contracts = importlib.import_module(".contracts", __name__)
    return host.deploy(
        contracts.Proxy(contracts.ForwardingStrategy(strategy)),
        sender=sender,
        init=abi.encode_call("initializeProxy(address)", dictionary),
    )


__all__ = ["__version__", "version", "new_host", "deploy_dictionary", "deploy_proxy"]
