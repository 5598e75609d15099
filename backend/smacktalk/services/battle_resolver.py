"""
对决伤害结算

纯函数规则引擎：输入一场对决的两份答案及其得票，输出双方新的战斗状态。
不访问数据库，持久化由 GameService 通过 state_from_player / apply_state 完成。
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Sequence, Union

from loguru import logger

from smacktalk.core.utils import is_finite_number

MAX_HP = 100
DAMAGE_CAP = 35  # 单场基础伤害上限
ROUND_MULTIPLIERS = {1: 1.0, 2: 1.3, 3: 1.0, 4: 1.5}
TIE_DAMAGE_RATIO = 0.5
WIN_STREAK_BONUS_AT = 2
WIN_STREAK_BONUS = 15
FINISHER_STREAK = 3  # 三连胜直接击倒对手
COMBO_BONUS_PER_TABLE = 0.10  # 每累计一整桌票数，伤害+10%
COMBO_BONUS_CAP = 0.5
CORNER_MAN_ROUNDS = (1, 2)


class Role(str, Enum):
    FIGHTER = "FIGHTER"
    CORNER_MAN = "CORNER_MAN"


class BattleKind(str, Enum):
    NO_VOTES = "NO_VOTES"
    DECISIVE = "DECISIVE"
    TIE = "TIE"
    DOUBLE_KO_TIE = "DOUBLE_KO_TIE"
    FORFEIT = "FORFEIT"


class AttackType(str, Enum):
    """决赛轮可选的出招方式"""
    JAB = "jab"
    HAYMAKER = "haymaker"
    FLYING_KICK = "flyingKick"


# 出招 → (造成伤害倍率, 承受伤害倍率)
ATTACK_MULTIPLIERS = {
    AttackType.JAB: (1.0, 1.0),
    AttackType.HAYMAKER: (2.0, 2.0),
    AttackType.FLYING_KICK: (3.0, 4.0),
}


@dataclass(frozen=True)
class Fighter:
    """仍在场上的选手（HP为0表示第3轮及以后被击倒）"""
    hp: int
    win_streak: int = 0
    loss_streak: int = 0
    combo: int = 0

    role = Role.FIGHTER

    @property
    def knocked_out(self) -> bool:
        return self.hp == 0


@dataclass(frozen=True)
class CornerMan:
    """被击倒或被淘汰后加入队长阵营的角落人"""
    captain_id: int
    eliminated_round: int
    hp: int = 0

    role = Role.CORNER_MAN

    @property
    def knocked_out(self) -> bool:
        return self.hp == 0


CombatState = Union[Fighter, CornerMan]


@dataclass(frozen=True)
class BattleEntry:
    """一方参赛者的答案与得票"""
    player_id: int
    submission_id: int
    text: str
    votes: int
    state: CombatState
    submitted_at: Optional[datetime] = None
    attack: AttackType = AttackType.JAB


@dataclass(frozen=True)
class PlayerOutcome:
    player_id: int
    before: CombatState
    after: CombatState
    damage: float = 0.0

    @property
    def knocked_out_now(self) -> bool:
        return self.after.knocked_out and not self.before.knocked_out

    @property
    def became_corner_man(self) -> bool:
        return isinstance(self.after, CornerMan) and not isinstance(self.before, CornerMan)


@dataclass(frozen=True)
class BattleResult:
    kind: BattleKind
    round_number: int
    total_votes: int
    base_damage: float
    damage: float
    outcomes: Dict[int, PlayerOutcome]
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None


def sanitize_hp(hp, default: int = MAX_HP) -> int:
    """保证HP是[0, 100]内的整数；损坏的值记录警告并回退为默认值"""
    if not is_finite_number(hp):
        logger.warning(f"检测到无效HP: {hp!r}，重置为 {default}")
        return default
    return max(0, min(MAX_HP, int(math.floor(hp))))


def round_multiplier(round_number: int) -> float:
    return ROUND_MULTIPLIERS.get(round_number, 1.0)


def parse_attack(value) -> AttackType:
    """把存储的出招还原为枚举，未知值按刺拳处理"""
    if value is None:
        return AttackType.JAB
    try:
        return AttackType(value)
    except ValueError:
        logger.warning(f"未知出招 {value!r}，按刺拳结算")
        return AttackType.JAB


def attack_multiplier(attacker: BattleEntry, defender: BattleEntry) -> float:
    dealt, _ = ATTACK_MULTIPLIERS[attacker.attack]
    _, received = ATTACK_MULTIPLIERS[defender.attack]
    return dealt * received


def _counter(value) -> int:
    return int(value) if is_finite_number(value) and value > 0 else 0


def sanitize_state(state: CombatState) -> CombatState:
    if isinstance(state, CornerMan):
        return replace(state, hp=sanitize_hp(state.hp))
    return Fighter(
        hp=sanitize_hp(state.hp),
        win_streak=_counter(state.win_streak),
        loss_streak=_counter(state.loss_streak),
        combo=_counter(state.combo),
    )


def is_active(state: CombatState) -> bool:
    """还能造成和承受伤害的选手"""
    return isinstance(state, Fighter) and state.hp > 0


def resolve_battle(entries: Sequence[BattleEntry], round_number: int, voter_pool: int = 1) -> BattleResult:
    """结算一场对决

    voter_pool 是一场对决中可投票的人数（总人数-2），用于连击加成的归一化。
    一方在本轮更早的对决中已经出局时，无论得票多少都判负，另一方不受伤害。
    """
    entries = [replace(e, state=sanitize_state(e.state), votes=max(0, int(e.votes))) for e in entries]

    if len(entries) != 2:
        logger.warning(f"对决需要两份答案，实际 {len(entries)} 份，跳过伤害结算")
        return _resolve_no_votes(entries, round_number)

    first, second = entries
    total_votes = first.votes + second.votes
    standing = [e for e in entries if is_active(e.state)]
    if len(standing) == 1:
        fallen = second if standing[0] is first else first
        return _resolve_forfeit(standing[0], fallen, round_number, total_votes)
    if not standing:
        logger.warning("对决双方都已出局，跳过伤害结算")
        return _resolve_no_votes(entries, round_number)

    if total_votes == 0:
        logger.warning("本场对决没有投票，跳过伤害结算")
        return _resolve_no_votes(entries, round_number)

    if first.votes == second.votes:
        return _resolve_tie(first, second, round_number, total_votes)
    return _resolve_decisive(first, second, round_number, total_votes, voter_pool)


def _resolve_no_votes(entries, round_number) -> BattleResult:
    outcomes = {}
    for entry in entries:
        after = entry.state
        if isinstance(after, Fighter):
            after = Fighter(hp=after.hp)
        outcomes[entry.player_id] = PlayerOutcome(entry.player_id, entry.state, after)
    return BattleResult(
        kind=BattleKind.NO_VOTES,
        round_number=round_number,
        total_votes=0,
        base_damage=0.0,
        damage=0.0,
        outcomes=outcomes,
    )


def _resolve_forfeit(standing, fallen, round_number, total_votes) -> BattleResult:
    logger.info(f"玩家 {fallen.player_id} 已出局，玩家 {standing.player_id} 不战而胜")
    outcomes = {
        standing.player_id: PlayerOutcome(standing.player_id, standing.state, _after_win(standing)),
        fallen.player_id: PlayerOutcome(fallen.player_id, fallen.state, fallen.state),
    }
    return BattleResult(
        kind=BattleKind.FORFEIT,
        round_number=round_number,
        total_votes=total_votes,
        base_damage=0.0,
        damage=0.0,
        outcomes=outcomes,
        winner_id=standing.player_id,
        loser_id=fallen.player_id,
    )


def _after_win(entry: BattleEntry, hp: Optional[int] = None) -> Fighter:
    state = entry.state
    return Fighter(
        hp=state.hp if hp is None else hp,
        win_streak=state.win_streak + 1,
        loss_streak=0,
        combo=state.combo + entry.votes,
    )


def _after_loss(entry: BattleEntry, new_hp: int, captain: BattleEntry, round_number: int) -> CombatState:
    if new_hp == 0 and round_number in CORNER_MAN_ROUNDS:
        return CornerMan(captain_id=captain.player_id, eliminated_round=round_number)

    state = entry.state
    # 零票输家连击清零，否则继续累计
    combo = 0 if entry.votes == 0 else state.combo + entry.votes
    return Fighter(hp=new_hp, win_streak=0, loss_streak=state.loss_streak + 1, combo=combo)


def _resolve_decisive(first, second, round_number, total_votes, voter_pool) -> BattleResult:
    loser, winner = sorted((first, second), key=lambda e: e.votes)
    multiplier = round_multiplier(round_number)

    votes_against = total_votes - loser.votes
    base_damage = votes_against / total_votes * DAMAGE_CAP * multiplier

    combo_bonus = min(COMBO_BONUS_CAP, COMBO_BONUS_PER_TABLE * winner.state.combo / max(1, voter_pool))
    damage = base_damage * (1 + combo_bonus)
    new_streak = winner.state.win_streak + 1
    finisher = new_streak == FINISHER_STREAK
    if new_streak == WIN_STREAK_BONUS_AT:
        damage += WIN_STREAK_BONUS
    elif finisher:
        logger.info(f"🔥 玩家 {winner.player_id} 三连胜，直接击倒对手 {loser.player_id}")
    damage *= attack_multiplier(winner, loser)

    new_hp = 0 if finisher else max(0, math.floor(loser.state.hp - damage))

    outcomes = {
        winner.player_id: PlayerOutcome(winner.player_id, winner.state, _after_win(winner)),
        loser.player_id: PlayerOutcome(
            loser.player_id,
            loser.state,
            _after_loss(loser, new_hp, winner, round_number),
            damage=damage,
        ),
    }

    logger.info(
        f"第{round_number}轮对决: 玩家 {loser.player_id} 受到 {damage:.1f} 伤害 "
        f"({loser.votes}/{total_votes} 票) → {new_hp} HP"
    )
    return BattleResult(
        kind=BattleKind.DECISIVE,
        round_number=round_number,
        total_votes=total_votes,
        base_damage=base_damage,
        damage=damage,
        outcomes=outcomes,
        winner_id=winner.player_id,
        loser_id=loser.player_id,
    )


def tiebreak_key(entry: BattleEntry):
    """双双击倒时的决胜顺序：答案更短 → 提交更早 → 答案ID更小"""
    submitted = entry.submitted_at.timestamp() if entry.submitted_at else float("inf")
    return (len(entry.text), submitted, entry.submission_id)


def _resolve_tie(first, second, round_number, total_votes) -> BattleResult:
    base_damage = TIE_DAMAGE_RATIO * DAMAGE_CAP * round_multiplier(round_number)
    taken = {
        first.player_id: base_damage * attack_multiplier(second, first),
        second.player_id: base_damage * attack_multiplier(first, second),
    }
    projected = {
        e.player_id: max(0, math.floor(e.state.hp - taken[e.player_id])) for e in (first, second)
    }

    knocked = [e for e in (first, second) if projected[e.player_id] == 0]
    outcomes: Dict[int, PlayerOutcome] = {}
    kind = BattleKind.TIE
    winner_id = loser_id = None

    if len(knocked) == 2:
        kind = BattleKind.DOUBLE_KO_TIE
        survivor, loser = sorted((first, second), key=tiebreak_key)
        logger.info(
            f"双双击倒！玩家 {survivor.player_id} 以 {len(survivor.text)} 字 "
            f"胜过玩家 {loser.player_id} 的 {len(loser.text)} 字，保留1 HP"
        )
        outcomes[survivor.player_id] = PlayerOutcome(
            survivor.player_id, survivor.state, _after_win(survivor, hp=1), damage=survivor.state.hp - 1
        )
        outcomes[loser.player_id] = PlayerOutcome(
            loser.player_id, loser.state, _after_loss(loser, 0, survivor, round_number),
            damage=taken[loser.player_id],
        )
        winner_id, loser_id = survivor.player_id, loser.player_id

    elif len(knocked) == 1:
        loser = knocked[0]
        survivor = second if loser is first else first
        outcomes[loser.player_id] = PlayerOutcome(
            loser.player_id, loser.state, _after_loss(loser, 0, survivor, round_number),
            damage=taken[loser.player_id],
        )
        outcomes[survivor.player_id] = PlayerOutcome(
            survivor.player_id,
            survivor.state,
            _after_win(survivor, hp=projected[survivor.player_id]),
            damage=taken[survivor.player_id],
        )
        winner_id, loser_id = survivor.player_id, loser.player_id

    else:
        # 平局打断双方连胜
        for entry in (first, second):
            state = entry.state
            after = Fighter(hp=projected[entry.player_id], win_streak=0, loss_streak=state.loss_streak + 1, combo=0)
            outcomes[entry.player_id] = PlayerOutcome(entry.player_id, state, after, damage=taken[entry.player_id])

    return BattleResult(
        kind=kind,
        round_number=round_number,
        total_votes=total_votes,
        base_damage=base_damage,
        damage=max(taken.values()),
        outcomes=outcomes,
        winner_id=winner_id,
        loser_id=loser_id,
    )


def state_from_player(player) -> CombatState:
    """把数据库中的扁平玩家记录转换为战斗状态"""
    if player.role == Role.CORNER_MAN.value:
        if player.team_id is not None:
            return CornerMan(
                captain_id=player.team_id,
                eliminated_round=player.became_corner_man_in_round or 0,
                hp=sanitize_hp(player.hp),
            )
        logger.warning(f"角落人 {player.id} 没有队长，按选手处理")
    return Fighter(
        hp=sanitize_hp(player.hp),
        win_streak=_counter(player.win_streak),
        loss_streak=_counter(player.loss_streak),
        combo=_counter(player.combo),
    )


def apply_state(player, state: CombatState) -> None:
    """把战斗状态写回玩家记录，每次写入都重新规范化HP"""
    hp = sanitize_hp(state.hp)
    player.hp = hp
    player.knocked_out = hp == 0
    if isinstance(state, CornerMan):
        player.role = Role.CORNER_MAN.value
        player.team_id = state.captain_id
        player.became_corner_man_in_round = state.eliminated_round
        player.win_streak = 0
        player.loss_streak = 0
        player.combo = 0
    else:
        player.role = Role.FIGHTER.value
        player.team_id = None
        player.became_corner_man_in_round = None
        player.win_streak = state.win_streak
        player.loss_streak = state.loss_streak
        player.combo = state.combo
