"""
机器人玩家

大厅里由VIP添加，凑人数用。没有角落人时自动作答，不参赛的对决自动投票；
有角落人后由角落人替它作答。
"""

import random
from typing import Sequence

BOT_NAMES = [
    "RoboRoaster",
    "Sir Quips-a-Lot",
    "Botzilla",
    "Clank Norris",
    "ChatterBox 3000",
    "HAL 9001",
]

BOT_ANSWERS = [
    "Beep boop, your mom",
    "I have calculated that you are wrong",
    "Error 404: comeback not found",
    "My circuits are hotter than your takes",
    "Have you tried turning your brain off and on again?",
    "I was trained on your search history",
    "Loading insult... 99%... still better than yours",
    "Even my spam filter rejected that",
    "I'd explain it, but you lack the RAM",
    "This is why robots will win",
]


def bot_name(index: int) -> str:
    """第index个机器人的默认名字，名字用完后追加编号"""
    base = BOT_NAMES[index % len(BOT_NAMES)]
    lap = index // len(BOT_NAMES)
    return base if lap == 0 else f"{base} {lap + 1}"


def bot_answer(rng: random.Random) -> str:
    return rng.choice(BOT_ANSWERS)


def bot_vote(rng: random.Random, submission_ids: Sequence[int]) -> int:
    return rng.choice(list(submission_ids))
