"""
游戏管理服务

房间注册、答案/投票登记与阶段推进。每个变更操作在该游戏的锁内作为一个事务执行，
提交成功后才发布领域事件。
"""

import random
from collections import Counter
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from smacktalk.core.config import Settings, settings as default_settings
from smacktalk.core.exceptions import (
    AlreadyVoted,
    ConflictError,
    InBattle,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from smacktalk.core.locks import RoomLocks, room_locks
from smacktalk.core.prompt_source import PromptSource
from smacktalk.core.utils import generate_room_code, is_blank, normalize_room_code
from smacktalk.models.game import Game
from smacktalk.models.message import Message
from smacktalk.models.player import Player
from smacktalk.models.prompt import Prompt
from smacktalk.models.submission import Submission
from smacktalk.models.suggestion import Suggestion
from smacktalk.models.vote import Vote
from smacktalk.schemas.event_schemas import (
    BattleResolved,
    CornerManAssigned,
    CutApplied,
    PhaseChanged,
    PlayerKnockedOut,
    RoundStarted,
)
from smacktalk.schemas.game_schemas import (
    CreateGameResponse,
    GameResponse,
    GameStatus,
    JoinGameResponse,
    MessageInfo,
    PlayerInfo,
    PromptInfo,
    RoomState,
    RoundStatus,
    SubmissionInfo,
    SuggestionInfo,
    VoteInfo,
)
from smacktalk.services.battle_resolver import (
    AttackType,
    BattleEntry,
    CornerMan,
    Role,
    apply_state,
    parse_attack,
    resolve_battle,
    state_from_player,
)
from smacktalk.services.bot_players import bot_answer, bot_name, bot_vote
from smacktalk.services.event_bus import EventBus, event_bus
from smacktalk.services.prompt_dispenser import PromptDispenser

POINTS_PER_VOTE = 100
MAX_NAME_LENGTH = 50


def require_game(db: Session, game_id: int) -> Game:
    """在锁内读取最新的游戏记录"""
    game = db.query(Game).populate_existing().filter(Game.id == game_id).first()
    if not game:
        raise NotFoundError("Game not found")
    return game


def require_player(db: Session, game: Game, player_id: int) -> Player:
    player = db.query(Player).populate_existing().filter(Player.id == player_id).first()
    if not player or player.game_id != game.id:
        raise NotFoundError("Player not found")
    return player


def current_round_prompts(db: Session, game: Game) -> List[Prompt]:
    """当前轮次的提示词（历史轮次通过round_number过滤掉）"""
    return db.query(Prompt).filter(
        Prompt.game_id == game.id,
        Prompt.round_number == game.current_round
    ).order_by(Prompt.order_index, Prompt.id).all()


def require_current_prompt(db: Session, game: Game, prompt_id: int) -> Prompt:
    prompt = db.query(Prompt).populate_existing().filter(Prompt.id == prompt_id).first()
    if not prompt or prompt.game_id != game.id or prompt.round_number != game.current_round:
        raise NotFoundError("Prompt not found")
    return prompt


def choose_attack(game: Game, attack_type: Optional[str]) -> AttackType:
    """校验出招：默认刺拳，重拳和飞踢只能在决赛轮使用"""
    if attack_type is None:
        return AttackType.JAB
    try:
        attack = AttackType(attack_type)
    except ValueError:
        raise ValidationError(f"Unknown attack type: {attack_type}")
    if attack != AttackType.JAB and game.current_round < game.max_rounds:
        raise PreconditionError("Attacks can only be chosen in the final round")
    return attack


class GameService:
    """游戏管理服务"""

    def __init__(
        self,
        db: Session,
        events: Optional[EventBus] = None,
        locks: Optional[RoomLocks] = None,
        prompt_source: Optional[PromptSource] = None,
        rng: Optional[random.Random] = None,
        code_factory: Optional[Callable[[], str]] = None,
        config: Optional[Settings] = None,
    ):
        self.db = db
        self.events = events or event_bus
        self.locks = locks or room_locks
        self.settings = config or default_settings
        self.rng = rng or random.Random()
        self.dispenser = PromptDispenser(db, prompt_source, self.rng)
        self.code_factory = code_factory or (
            lambda: generate_room_code(self.settings.ROOM_CODE_LENGTH, self.rng)
        )

    @asynccontextmanager
    async def _transaction(self, key):
        """持锁执行一次变更：成功则提交并发布事件，失败则回滚"""
        async with self.locks.hold(key):
            pending = []
            try:
                yield pending
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            await self.events.publish_all(pending)

    # ------------------------------------------------------------------
    # 房间注册
    # ------------------------------------------------------------------

    async def create_game(self) -> CreateGameResponse:
        """创建新房间；房间码冲突时直接报错，由调用方重试"""
        async with self._transaction(RoomLocks.REGISTRY_KEY):
            room_code = self.code_factory()
            existing = self.db.query(Game).filter(Game.room_code == room_code).first()
            if existing:
                raise ConflictError("Code collision, try again")

            game = Game(
                room_code=room_code,
                status=GameStatus.LOBBY,
                current_round=1,
                max_rounds=self.settings.MAX_ROUNDS,
            )
            self.db.add(game)
            self.db.flush()
            game_id = game.id

        logger.bind(game_id=game_id).info(f"🎮 创建房间 {room_code}")
        return CreateGameResponse(game_id=game_id, room_code=room_code)

    async def join_game(self, room_code: str, player_name: str) -> JoinGameResponse:
        """加入房间，第一个加入的真人玩家成为VIP"""
        code = normalize_room_code(room_code)
        if not code:
            raise ValidationError("Room code required")
        if is_blank(player_name):
            raise ValidationError("Name required")
        name = player_name.strip()
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")

        game = self.db.query(Game).filter(Game.room_code == code).first()
        if not game:
            raise NotFoundError("Room not found")
        game_id = game.id

        async with self._transaction(game_id):
            game = require_game(self.db, game_id)
            if game.status != GameStatus.LOBBY:
                raise PreconditionError("Game already started")

            existing_count = self.db.query(Player).filter(Player.game_id == game_id).count()
            has_vip = self.db.query(Player).filter(
                Player.game_id == game_id,
                Player.is_vip.is_(True)
            ).count() > 0
            player = Player(
                game_id=game_id,
                name=name,
                score=0,
                is_vip=not has_vip,
                is_bot=False,
                hp=self.settings.STARTING_HP,
                knocked_out=False,
                role=Role.FIGHTER.value,
            )
            self.db.add(player)
            self.db.flush()
            player_id = player.id

        logger.bind(game_id=game_id).info(f"玩家 {name} 加入房间 {code}（共 {existing_count + 1} 人）")
        return JoinGameResponse(player_id=player_id, game_id=game_id)

    async def add_bot(self, game_id: int, actor_id: Optional[int] = None,
                      name: Optional[str] = None) -> JoinGameResponse:
        """在大厅添加机器人玩家，机器人不会成为VIP"""
        async with self._transaction(game_id):
            game = require_game(self.db, game_id)
            if game.status != GameStatus.LOBBY:
                raise PreconditionError("Game already started")
            self._check_actor(game, actor_id)

            bot_count = self.db.query(Player).filter(
                Player.game_id == game_id,
                Player.is_bot.is_(True)
            ).count()
            bot_display_name = bot_name(bot_count) if is_blank(name) else name.strip()
            if len(bot_display_name) > MAX_NAME_LENGTH:
                raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters")

            bot = Player(
                game_id=game_id,
                name=bot_display_name,
                score=0,
                is_vip=False,
                is_bot=True,
                hp=self.settings.STARTING_HP,
                knocked_out=False,
                role=Role.FIGHTER.value,
            )
            self.db.add(bot)
            self.db.flush()
            bot_id = bot.id

        logger.bind(game_id=game_id).info(f"🤖 机器人 {bot_display_name} 加入房间")
        return JoinGameResponse(player_id=bot_id, game_id=game_id)

    async def start_game(self, game_id: int, actor_id: Optional[int] = None) -> dict:
        """开始游戏：检查人数并分配第一轮提示词"""
        async with self._transaction(game_id) as events:
            game = require_game(self.db, game_id)
            if game.status != GameStatus.LOBBY:
                raise PreconditionError("Game already started")
            self._check_actor(game, actor_id)

            player_count = self.db.query(Player).filter(Player.game_id == game_id).count()
            if player_count < self.settings.MIN_PLAYERS:
                raise PreconditionError(f"Need at least {self.settings.MIN_PLAYERS} players")

            self._start_round(game, events)

        logger.bind(game_id=game_id).info(f"🚀 游戏开始，{player_count} 位玩家")
        return {"status": GameStatus.PROMPTS, "players": player_count}

    def _check_actor(self, game: Game, actor_id: Optional[int]) -> None:
        if actor_id is None:
            return
        actor = require_player(self.db, game, actor_id)
        if not actor.is_vip:
            raise PreconditionError("Only the VIP can do that")

    # ------------------------------------------------------------------
    # 答案与投票
    # ------------------------------------------------------------------

    async def submit_answer(self, game_id: int, player_id: int, prompt_id: int, text: str,
                            attack_type: Optional[str] = None) -> int:
        """提交答案；所有参赛者答完后自动进入投票阶段"""
        async with self._transaction(game_id) as events:
            game = require_game(self.db, game_id)
            if game.status != GameStatus.PROMPTS:
                raise PreconditionError("Answers are not being collected right now")

            prompt = require_current_prompt(self.db, game, prompt_id)
            player = require_player(self.db, game, player_id)
            if player.is_bot:
                raise PreconditionError("Bots answer through their corner man")
            if player.id not in prompt.assigned_to:
                raise PreconditionError("You are not assigned to this prompt")

            submission_id = self._record_answer(game, prompt, player, text, attack_type, events)

        return submission_id

    async def submit_answer_for_bot(self, game_id: int, player_id: int, prompt_id: int, text: str,
                                    attack_type: Optional[str] = None) -> int:
        """角落人替自己的机器人队长作答"""
        async with self._transaction(game_id) as events:
            game = require_game(self.db, game_id)
            if game.status != GameStatus.PROMPTS:
                raise PreconditionError("Answers are not being collected right now")

            prompt = require_current_prompt(self.db, game, prompt_id)
            corner_man = require_player(self.db, game, player_id)
            if corner_man.role != Role.CORNER_MAN.value or corner_man.team_id is None:
                raise PreconditionError("Only corner men can answer for their captain")
            captain = require_player(self.db, game, corner_man.team_id)
            if not captain.is_bot:
                raise PreconditionError("Your captain is not a bot")
            if captain.id not in prompt.assigned_to:
                raise PreconditionError("Your captain is not in this battle")

            submission_id = self._record_answer(game, prompt, captain, text, attack_type, events)

        logger.bind(game_id=game_id).info(f"角落人 {corner_man.name} 替机器人 {captain.name} 作答")
        return submission_id

    def _record_answer(self, game: Game, prompt: Prompt, player: Player, text: str,
                       attack_type: Optional[str], events: list) -> int:
        if is_blank(text):
            raise ValidationError("Answer required")
        answer = text.strip()
        if len(answer) > self.settings.MAX_ANSWER_LENGTH:
            raise ValidationError(f"Answer must be at most {self.settings.MAX_ANSWER_LENGTH} characters")
        attack = choose_attack(game, attack_type)

        existing = self.db.query(Submission).filter(
            Submission.prompt_id == prompt.id,
            Submission.player_id == player.id
        ).first()
        if existing:
            raise ConflictError("Already answered this prompt")

        submission = Submission(prompt_id=prompt.id, player_id=player.id, text=answer, attack_type=attack.value)
        self.db.add(submission)
        self.db.flush()

        self._check_answers_complete(game, events)
        return submission.id

    def _auto_answer_bots(self, game: Game, prompts: List[Prompt], events: list) -> None:
        """没有角落人的机器人自动作答"""
        bots = {p.id: p for p in self.db.query(Player).filter(
            Player.game_id == game.id,
            Player.is_bot.is_(True)
        ).all()}
        if not bots:
            return
        coached = {cm.team_id for cm in self.db.query(Player).filter(
            Player.game_id == game.id,
            Player.role == Role.CORNER_MAN.value,
            Player.team_id.in_(list(bots))
        ).all()}

        answered = 0
        for prompt in prompts:
            for player_id in prompt.assigned_to:
                if player_id in bots and player_id not in coached:
                    self.db.add(Submission(
                        prompt_id=prompt.id,
                        player_id=player_id,
                        text=bot_answer(self.rng),
                        attack_type=AttackType.JAB.value,
                    ))
                    answered += 1

        if answered:
            self.db.flush()
            logger.bind(game_id=game.id).debug(f"机器人自动提交了 {answered} 份答案")
            self._check_answers_complete(game, events)

    def _check_answers_complete(self, game: Game, events: list) -> None:
        prompts = current_round_prompts(self.db, game)
        expected = len(prompts) * 2
        received = self.db.query(Submission).filter(
            Submission.prompt_id.in_([p.id for p in prompts])
        ).count()

        logger.bind(game_id=game.id).debug(f"答案进度: {received}/{expected}")

        if prompts and received >= expected:
            game.status = GameStatus.VOTING
            logger.bind(game_id=game.id).info("所有答案已收齐，进入投票阶段")
            self._open_battle(game, prompts[0], events)

    def _open_battle(self, game: Game, prompt: Prompt, events: list) -> None:
        game.current_prompt_id = prompt.id
        game.round_status = RoundStatus.VOTING
        events.append(self._phase_event(game))
        self._cast_bot_votes(game, prompt, events)

    def _cast_bot_votes(self, game: Game, prompt: Prompt, events: list) -> None:
        """不参赛的机器人随机投一票"""
        bots = self.db.query(Player).filter(
            Player.game_id == game.id,
            Player.is_bot.is_(True)
        ).order_by(Player.id).all()
        voters = [b for b in bots if b.id not in prompt.assigned_to]
        submission_ids = [s.id for s in self.db.query(Submission).filter(
            Submission.prompt_id == prompt.id
        ).order_by(Submission.id).all()]
        if not voters or not submission_ids:
            return

        voted = {v.player_id for v in self.db.query(Vote).filter(Vote.prompt_id == prompt.id).all()}
        for bot in voters:
            if bot.id not in voted:
                self.db.add(Vote(prompt_id=prompt.id, player_id=bot.id, submission_id=bot_vote(self.rng, submission_ids)))
        self.db.flush()
        self._check_votes_complete(game, prompt, events)

    async def submit_vote(self, game_id: int, player_id: int, prompt_id: int, submission_id: int) -> int:
        """投票；非参赛者全部投完后进入揭晓并结算伤害"""
        async with self._transaction(game_id) as events:
            game = require_game(self.db, game_id)
            prompt = require_current_prompt(self.db, game, prompt_id)
            player = require_player(self.db, game, player_id)

            existing = self.db.query(Vote).filter(
                Vote.prompt_id == prompt.id,
                Vote.player_id == player.id
            ).first()
            if existing:
                raise AlreadyVoted("Already voted")

            submitter_ids = {s.player_id for s in prompt.submissions}
            if player.id in submitter_ids or player.id in prompt.assigned_to:
                raise InBattle("You are in this battle! You cannot vote.")

            if (game.status != GameStatus.VOTING
                    or game.current_prompt_id != prompt.id
                    or game.round_status != RoundStatus.VOTING):
                raise PreconditionError("Voting is closed for this prompt")

            submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
            if not submission or submission.prompt_id != prompt.id:
                raise NotFoundError("Submission not found")

            vote = Vote(prompt_id=prompt.id, player_id=player.id, submission_id=submission.id)
            self.db.add(vote)
            self.db.flush()
            vote_id = vote.id

            self._check_votes_complete(game, prompt, events)

        return vote_id

    def _check_votes_complete(self, game: Game, prompt: Prompt, events: list) -> None:
        total_players = self.db.query(Player).filter(Player.game_id == game.id).count()
        expected = max(1, total_players - 2)
        received = self.db.query(Vote).filter(Vote.prompt_id == prompt.id).count()

        if received >= expected:
            logger.bind(game_id=game.id).info(f"提示词 {prompt.id} 投票完成（{received}/{expected}），揭晓结果")
            game.round_status = RoundStatus.REVEAL
            self._resolve_prompt(game, prompt, total_players, events)
            events.append(self._phase_event(game))

    def _resolve_prompt(self, game: Game, prompt: Prompt, total_players: int, events: list) -> None:
        """结算一场对决：计分、伤害、击倒与角落人分配"""
        if prompt.resolved:
            return
        log = logger.bind(game_id=game.id)

        votes = self.db.query(Vote).filter(Vote.prompt_id == prompt.id).all()
        submissions = self.db.query(Submission).filter(
            Submission.prompt_id == prompt.id
        ).order_by(Submission.id).all()
        tally = Counter(v.submission_id for v in votes)
        players = {}
        entries = []
        for sub in submissions:
            player = self.db.query(Player).filter(Player.id == sub.player_id).first()
            if not player:
                log.warning(f"答案 {sub.id} 的玩家 {sub.player_id} 不存在，跳过")
                continue
            votes_for = tally.get(sub.id, 0)
            player.score = (player.score or 0) + votes_for * POINTS_PER_VOTE
            players[player.id] = player
            entries.append(BattleEntry(
                player_id=player.id,
                submission_id=sub.id,
                text=sub.text,
                votes=votes_for,
                state=state_from_player(player),
                submitted_at=sub.created_at,
                attack=parse_attack(sub.attack_type),
            ))

        result = resolve_battle(entries, game.current_round, voter_pool=max(1, total_players - 2))

        # 先发布击倒事件，再发布角落人分配，各自按玩家ID排序
        knockouts, assignments = [], []
        for player_id in sorted(result.outcomes):
            outcome = result.outcomes[player_id]
            player = players[player_id]
            if outcome.became_corner_man:
                captain_id = outcome.after.captain_id
                existing = self.db.query(Player).filter(
                    Player.game_id == game.id,
                    Player.team_id == captain_id,
                    Player.role == Role.CORNER_MAN.value,
                    Player.id != player_id
                ).count()
                if existing:
                    log.warning(f"队长 {captain_id} 已有 {existing} 名角落人，仍然分配 {player.name}")
                assignments.append(CornerManAssigned(
                    game_id=game.id,
                    player_id=player_id,
                    captain_id=captain_id,
                    round_number=game.current_round,
                ))
            apply_state(player, outcome.after)
            if outcome.knocked_out_now:
                log.info(f"💥 {player.name} 在第{game.current_round}轮被击倒")
                knockouts.append(PlayerKnockedOut(
                    game_id=game.id,
                    player_id=player_id,
                    round_number=game.current_round,
                    by_player_id=result.winner_id if player_id == result.loser_id else None,
                ))

        prompt.resolved = True
        self.db.flush()

        events.append(BattleResolved(
            game_id=game.id,
            prompt_id=prompt.id,
            round_number=game.current_round,
            kind=result.kind.value,
            total_votes=result.total_votes,
            damage=round(result.damage, 2),
            winner_id=result.winner_id,
            loser_id=result.loser_id,
            hp={pid: p.hp for pid, p in players.items()},
        ))
        events.extend(knockouts)
        events.extend(assignments)

    # ------------------------------------------------------------------
    # 阶段推进
    # ------------------------------------------------------------------

    async def next_battle(self, game_id: int, actor_id: Optional[int] = None) -> GameResponse:
        """揭晓后进入下一场对决；本轮结束则进入轮次结算或游戏结束"""
        async with self._transaction(game_id) as events:
            game = require_game(self.db, game_id)
            self._check_actor(game, actor_id)
            if game.status != GameStatus.VOTING or game.round_status != RoundStatus.REVEAL:
                raise PreconditionError("Battle results are not revealed yet")

            prompts = current_round_prompts(self.db, game)
            ids = [p.id for p in prompts]
            index = ids.index(game.current_prompt_id) if game.current_prompt_id in ids else len(ids) - 1

            if index < len(prompts) - 1:
                self._open_battle(game, prompts[index + 1], events)
            else:
                self._finish_round(game, events)

            response = GameResponse.model_validate(game)
        return response

    async def next_round(self, game_id: int, actor_id: Optional[int] = None) -> GameResponse:
        """轮次结算后开始下一轮"""
        async with self._transaction(game_id) as events:
            game = require_game(self.db, game_id)
            self._check_actor(game, actor_id)
            if game.status != GameStatus.ROUND_RESULTS:
                raise PreconditionError("Round is not over yet")

            if game.current_round == self.settings.CUT_AFTER_ROUND:
                self._apply_cut(game, events)

            game.current_round += 1
            if len(self.dispenser.battlers_for(game)) < 2:
                logger.bind(game_id=game_id).info("场上选手不足两人，游戏提前结束")
                self._finish_game(game, events)
            else:
                self._start_round(game, events)

            response = GameResponse.model_validate(game)
        return response

    def _apply_cut(self, game: Game, events: list) -> None:
        """按HP（其次得分）排名，只有前CUT_SIZE名选手晋级

        被淘汰的选手保留HP成为角落人，依次分给角落人最少的晋级选手（同样多时排名靠前者优先）；
        原来跟随被淘汰选手的角落人转给其新队长。
        """
        size = self.settings.CUT_SIZE
        fighters = self.dispenser.battlers_for(game)
        if size <= 0 or len(fighters) <= size:
            return
        log = logger.bind(game_id=game.id)

        ranked = sorted(fighters, key=lambda p: (-p.hp, -(p.score or 0), p.id))
        advancing, eliminated = ranked[:size], ranked[size:]
        corner_men = self.db.query(Player).filter(
            Player.game_id == game.id,
            Player.role == Role.CORNER_MAN.value
        ).order_by(Player.id).all()
        load = {c.id: 0 for c in advancing}
        for corner_man in corner_men:
            if corner_man.team_id in load:
                load[corner_man.team_id] += 1

        assignments = []
        new_captain = {}
        for player in eliminated:
            captain = min(advancing, key=lambda c: load[c.id])
            load[captain.id] += 1
            new_captain[player.id] = captain.id
            apply_state(player, CornerMan(
                captain_id=captain.id,
                eliminated_round=game.current_round,
                hp=player.hp,
            ))
            assignments.append(CornerManAssigned(
                game_id=game.id,
                player_id=player.id,
                captain_id=captain.id,
                round_number=game.current_round,
            ))
            log.info(f"✂️ {player.name}（{player.hp} HP）未能晋级，成为 {captain.name} 的角落人")

        for corner_man in corner_men:
            if corner_man.team_id in new_captain:
                corner_man.team_id = new_captain[corner_man.team_id]
                assignments.append(CornerManAssigned(
                    game_id=game.id,
                    player_id=corner_man.id,
                    captain_id=corner_man.team_id,
                    round_number=game.current_round,
                ))

        self.db.flush()
        events.append(CutApplied(
            game_id=game.id,
            round_number=game.current_round,
            advancing=[p.id for p in advancing],
            eliminated=[p.id for p in eliminated],
        ))
        events.extend(assignments)

    def _start_round(self, game: Game, events: list) -> None:
        prompts = self.dispenser.assign_round(game)
        game.status = GameStatus.PROMPTS
        game.current_prompt_id = None
        game.round_status = None
        events.append(RoundStarted(
            game_id=game.id,
            round_number=game.current_round,
            prompt_ids=[p.id for p in prompts],
        ))
        events.append(self._phase_event(game))
        self._auto_answer_bots(game, prompts, events)

    def _finish_round(self, game: Game, events: list) -> None:
        if game.current_round < game.max_rounds:
            game.status = GameStatus.ROUND_RESULTS
            game.current_prompt_id = None
            game.round_status = None
            events.append(self._phase_event(game))
            logger.bind(game_id=game.id).info(f"第{game.current_round}轮结束")
        else:
            self._finish_game(game, events)

    def _finish_game(self, game: Game, events: list) -> None:
        game.status = GameStatus.RESULTS
        game.current_prompt_id = None
        game.round_status = None
        if self.settings.PURGE_ON_GAME_END:
            self._purge_battle_records(game)
        events.append(self._phase_event(game))
        logger.bind(game_id=game.id).info("🏁 游戏结束")

    def _purge_battle_records(self, game: Game) -> None:
        """删除该游戏的提示词、答案、投票和建议"""
        prompt_ids = [p.id for p in self.db.query(Prompt.id).filter(Prompt.game_id == game.id).all()]
        if prompt_ids:
            self.db.query(Vote).filter(Vote.prompt_id.in_(prompt_ids)).delete(synchronize_session=False)
            self.db.query(Submission).filter(Submission.prompt_id.in_(prompt_ids)).delete(synchronize_session=False)
        self.db.query(Suggestion).filter(Suggestion.game_id == game.id).delete(synchronize_session=False)
        self.db.query(Prompt).filter(Prompt.game_id == game.id).delete(synchronize_session=False)
        logger.bind(game_id=game.id).info(f"已清理 {len(prompt_ids)} 个提示词及其答案和投票")

    @staticmethod
    def _phase_event(game: Game) -> PhaseChanged:
        return PhaseChanged(
            game_id=game.id,
            status=game.status,
            round_status=game.round_status,
            current_prompt_id=game.current_prompt_id,
        )

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    async def get_game(self, game_id: int) -> Optional[GameResponse]:
        """根据ID获取游戏信息"""
        game = self.db.query(Game).filter(Game.id == game_id).first()
        if game:
            return GameResponse.model_validate(game)
        return None

    async def list_games(self, skip: int = 0, limit: int = 10) -> List[GameResponse]:
        """获取游戏列表"""
        games = self.db.query(Game).order_by(Game.id.desc()).offset(skip).limit(limit).all()
        return [GameResponse.model_validate(game) for game in games]

    async def get_room_state(self, room_code: str) -> Optional[RoomState]:
        """根据房间码获取房间快照"""
        code = normalize_room_code(room_code)
        if not code:
            return None
        game = self.db.query(Game).populate_existing().filter(Game.room_code == code).first()
        if not game:
            return None
        return self._room_state(game)

    async def get_room_state_for_game(self, game_id: int) -> Optional[RoomState]:
        game = self.db.query(Game).populate_existing().filter(Game.id == game_id).first()
        if not game:
            return None
        return self._room_state(game)

    def _room_state(self, game: Game) -> RoomState:
        players = self.db.query(Player).filter(Player.game_id == game.id).order_by(Player.id).all()
        messages = self.db.query(Message).filter(Message.game_id == game.id).order_by(Message.id).all()
        prompts = current_round_prompts(self.db, game)
        prompt_ids = [p.id for p in prompts]

        submissions, votes, suggestions = [], [], []
        if prompt_ids:
            submissions = self.db.query(Submission).filter(
                Submission.prompt_id.in_(prompt_ids)
            ).order_by(Submission.id).all()
            votes = self.db.query(Vote).filter(Vote.prompt_id.in_(prompt_ids)).order_by(Vote.id).all()
            suggestions = self.db.query(Suggestion).filter(
                Suggestion.prompt_id.in_(prompt_ids)
            ).order_by(Suggestion.id).all()

        return RoomState(
            game=GameResponse.model_validate(game),
            players=[PlayerInfo.model_validate(p) for p in players],
            messages=[MessageInfo.model_validate(m) for m in messages],
            prompts=[PromptInfo.model_validate(p) for p in prompts],
            submissions=[SubmissionInfo.model_validate(s) for s in submissions],
            votes=[VoteInfo.model_validate(v) for v in votes],
            suggestions=[SuggestionInfo.model_validate(s) for s in suggestions],
        )
