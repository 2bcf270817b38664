import pytest

from staking_rewards.codec import CodecError
from staking_rewards.errors import ProgramError, ProgramErrorKind
from staking_rewards.instruction import (
    AccountMeta,
    AddVault,
    Claim,
    DepositMining,
    FillVault,
    InitializePool,
    InitializeRoot,
    MigrateMining,
    MigratePool,
    UpdateVault,
    UpgradeMining,
    WithdrawMining,
    add_vault,
    claim,
    decode_instruction,
    deposit_mining,
    encode_instruction,
    fill_vault,
    initialize_pool,
    initialize_root,
    migrate_mining,
    migrate_pool,
    update_vault,
    upgrade_mining,
    withdraw_mining,
)
from staking_rewards.pubkey import (
    CLOCK_SYSVAR_ID,
    RENT_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    Pubkey,
)
from staking_rewards.reward_pool import RewardTier


def key(n):
    return Pubkey(bytes([n]) * 32)


PROGRAM = key(200)

TIERS = [
    RewardTier(ratio_base=1, ratio_quote=2, reward_max_amount_per_period=3),
    RewardTier(ratio_base=4, ratio_quote=5, reward_max_amount_per_period=6),
]


@pytest.mark.parametrize(
    "instruction",
    [
        InitializePool(lock_time_sec=60, max_stakers=5),
        AddVault(reward_period_sec=60, is_enabled=True, tiers=TIERS),
        UpdateVault(),
        UpdateVault(reward_period_sec=120, is_enabled=True, tiers=TIERS),
        UpdateVault(is_enabled=False),
        FillVault(amount=1_000_000),
        DepositMining(amount=1250),
        WithdrawMining(),
        Claim(),
        UpgradeMining(tier=2),
        InitializeRoot(),
        MigratePool(max_stakers=10, total_stakers=5),
        MigrateMining(),
    ],
)
def test_round_trip(instruction):
    assert decode_instruction(encode_instruction(instruction)) == instruction


def test_wire_bytes_of_tags():
    assert encode_instruction(WithdrawMining()) == b"\x05"
    assert encode_instruction(InitializeRoot()) == b"\x08"
    assert encode_instruction(FillVault(amount=1)) == b"\x03\x01" + bytes(7)


def test_tags_follow_declaration_order():
    variants = [
        InitializePool(0, 0),
        AddVault(0, False),
        UpdateVault(),
        FillVault(0),
        DepositMining(0),
        WithdrawMining(),
        Claim(),
        UpgradeMining(0),
        InitializeRoot(),
        MigratePool(0, 0),
        MigrateMining(),
    ]
    assert [encode_instruction(v)[0] for v in variants] == list(range(len(variants)))


def test_decode_empty_is_invalid():
    with pytest.raises(ProgramError) as info:
        decode_instruction(b"")
    assert info.value.kind is ProgramErrorKind.INVALID_INSTRUCTION_DATA


def test_decode_unknown_tag():
    with pytest.raises(ProgramError) as info:
        decode_instruction(bytes([11]))
    assert info.value.kind is ProgramErrorKind.INVALID_INSTRUCTION_DATA


def test_decode_trailing_bytes():
    data = encode_instruction(Claim()) + b"\x00"
    with pytest.raises(ProgramError) as info:
        decode_instruction(data)
    assert info.value.kind is ProgramErrorKind.INVALID_INSTRUCTION_DATA


def test_decode_truncated():
    data = encode_instruction(DepositMining(amount=75))[:-1]
    with pytest.raises(ProgramError) as info:
        decode_instruction(data)
    assert info.value.kind is ProgramErrorKind.INVALID_INSTRUCTION_DATA


def test_encode_rejects_out_of_range_tier():
    with pytest.raises(CodecError):
        encode_instruction(UpgradeMining(tier=256))


def test_encode_rejects_foreign_object():
    with pytest.raises(TypeError):
        encode_instruction("claim")


def test_account_meta_constructors():
    meta = AccountMeta.writable(key(1), True)
    assert (meta.is_signer, meta.is_writable) == (True, True)
    meta = AccountMeta.readonly(key(2))
    assert (meta.is_signer, meta.is_writable) == (False, False)


def test_initialize_pool_accounts_and_data():
    ix = initialize_pool(PROGRAM, key(1), key(2), key(3), key(4), key(5), key(6), 60, 5)
    assert ix.program_id == PROGRAM
    assert [m.pubkey for m in ix.accounts] == [
        key(1), key(2), key(3), key(4), key(5), key(6),
        TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID, RENT_SYSVAR_ID,
    ]
    assert [m.is_writable for m in ix.accounts] == [
        False, True, True, False, False, True, False, False, False,
    ]
    assert [m.pubkey for m in ix.accounts if m.is_signer] == [key(6)]
    assert decode_instruction(ix.data) == InitializePool(lock_time_sec=60, max_stakers=5)


def test_add_vault_is_enabled_and_keeps_tiers():
    ix = add_vault(PROGRAM, key(1), key(2), key(3), key(4), key(5), 60, TIERS)
    decoded = decode_instruction(ix.data)
    assert decoded == AddVault(reward_period_sec=60, is_enabled=True, tiers=TIERS)
    assert ix.accounts[7].pubkey == CLOCK_SYSVAR_ID
    assert ix.accounts[4] == AccountMeta.writable(key(5), True)


def test_update_vault_options():
    ix = update_vault(PROGRAM, key(1), key(2), key(3), key(4), None, False, None)
    assert decode_instruction(ix.data) == UpdateVault(is_enabled=False)
    assert ix.accounts[-1] == AccountMeta.readonly(CLOCK_SYSVAR_ID)
    assert ix.accounts[3] == AccountMeta.writable(key(4), True)


def test_fill_vault_builder():
    ix = fill_vault(PROGRAM, key(1), key(2), key(3), key(4), key(5), 500_000)
    assert decode_instruction(ix.data) == FillVault(amount=500_000)
    assert [m.pubkey for m in ix.accounts] == [
        key(1), key(2), key(3), key(4), key(5), TOKEN_PROGRAM_ID,
    ]


def test_deposit_mining_builder():
    ix = deposit_mining(PROGRAM, key(1), key(2), key(3), key(4), key(5), key(6), 1250)
    assert decode_instruction(ix.data) == DepositMining(amount=1250)
    assert ix.accounts[3] == AccountMeta.writable(key(4))
    assert ix.accounts[5] == AccountMeta.writable(key(6), True)
    assert ix.accounts[-1].pubkey == RENT_SYSVAR_ID


def test_withdraw_mining_builder():
    ix = withdraw_mining(PROGRAM, key(1), key(2), key(3), key(4), key(5), key(6), key(7))
    assert decode_instruction(ix.data) == WithdrawMining()
    assert ix.accounts[2] == AccountMeta.readonly(key(3))
    assert ix.accounts[6] == AccountMeta.writable(key(7), True)
    assert ix.accounts[-1].pubkey == CLOCK_SYSVAR_ID


def test_upgrade_mining_builder():
    ix = upgrade_mining(PROGRAM, key(1), key(2), key(3), key(4), key(5), 2)
    assert decode_instruction(ix.data) == UpgradeMining(tier=2)
    assert ix.accounts[1] == AccountMeta.readonly(key(2))
    assert [m.pubkey for m in ix.accounts if m.is_signer] == [key(5)]


def test_claim_builder():
    ix = claim(PROGRAM, key(1), key(2), key(3), key(4), key(5), key(6))
    assert decode_instruction(ix.data) == Claim()
    assert ix.accounts[4] == AccountMeta.writable(key(5), True)
    assert ix.accounts[5] == AccountMeta.writable(key(6))


def test_initialize_root_builder():
    ix = initialize_root(PROGRAM, key(1), key(2))
    assert decode_instruction(ix.data) == InitializeRoot()
    assert ix.accounts[:2] == [
        AccountMeta.writable(key(1), True),
        AccountMeta.writable(key(2), True),
    ]


def test_migrate_pool_builder():
    ix = migrate_pool(PROGRAM, key(1), key(2), key(3), key(4), 10, 5)
    assert decode_instruction(ix.data) == MigratePool(max_stakers=10, total_stakers=5)
    assert [m.pubkey for m in ix.accounts] == [
        key(1), key(2), key(4), key(3), SYSTEM_PROGRAM_ID, RENT_SYSVAR_ID,
    ]


def test_migrate_mining_builder():
    ix = migrate_mining(PROGRAM, key(1), key(2), key(3), key(4), key(5))
    assert decode_instruction(ix.data) == MigrateMining()
    assert [m.pubkey for m in ix.accounts] == [
        key(1), key(2), key(3), key(5), key(4), SYSTEM_PROGRAM_ID, RENT_SYSVAR_ID,
    ]
    assert ix.accounts[4].is_signer