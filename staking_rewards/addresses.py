"""Program id and derived addresses of the rewards program's accounts."""

from __future__ import annotations

from staking_rewards.pubkey import Pubkey, find_program_address

PROGRAM_ID = Pubkey.from_base58("SPEzQBzoNBMTZM9wWu6WHx9HF4vcKWwGzb6RtAbehVm")


def find_mining_program_address(
    program_id: Pubkey, user: Pubkey, reward_pool: Pubkey
) -> tuple[Pubkey, int]:
    """Address and bump of a user's mining account in a pool."""
    return find_program_address([b"mining", bytes(user), bytes(reward_pool)], program_id)


def find_vault_spl_token_account(
    program_id: Pubkey, reward_pool: Pubkey, reward_mint: Pubkey
) -> tuple[Pubkey, int]:
    """Address and bump of a pool's reward vault token account."""
    return find_program_address([b"vault", bytes(reward_pool), bytes(reward_mint)], program_id)


def find_reward_pool_program_address(
    program_id: Pubkey, root_account: Pubkey, liquidity_mint: Pubkey
) -> tuple[Pubkey, int]:
    """Address and bump of the reward pool for a root and liquidity mint."""
    return find_program_address(
        [b"reward_pool", bytes(root_account), bytes(liquidity_mint)], program_id
    )


def find_reward_pool_spl_token_account(
    program_id: Pubkey, pool_account: Pubkey, liquidity_mint: Pubkey
) -> tuple[Pubkey, int]:
    """Address and bump of the token account holding a pool's staked liquidity."""
    return find_program_address([b"spl", bytes(pool_account), bytes(liquidity_mint)], program_id)