"""Pydantic request schemas for the public API.

Only HTTP input validation lives here. Contract-level validation (function
names, arity) is done by founderz.contract.dispatch so every host enforces
the same rules.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from founderz.contract.dispatch import DEFAULT_CONTRACT


class InvocationRequest(BaseModel):
    contract: str = Field(default=DEFAULT_CONTRACT, description="Contract name")
    function: str = Field(..., description="Transaction name, e.g. mint / fetch")
    args: List[str] = Field(default_factory=list, description="Positional string arguments")
    nonce: int = Field(default=0, description="Caller nonce; distinguishes otherwise identical txs")

    model_config = {"extra": "forbid"}


class MintRequest(BaseModel):
    key: str = Field(..., description="Agreement key")
    value: str = Field(..., description="Agreement content (opaque)")
    nonce: int = Field(default=0, description="Caller nonce")

    model_config = {"extra": "forbid"}
