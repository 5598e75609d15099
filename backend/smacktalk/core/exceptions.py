"""
游戏错误类型
"""


class GameError(Exception):
    """所有游戏规则错误的基类"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    """输入不合法（空名字、缺少房间码等），需要用户修改输入"""

    status_code = 422


class NotFoundError(GameError):
    """房间、游戏、玩家或提示词不存在"""

    status_code = 404


class ConflictError(GameError):
    """房间码冲突、重复投票、参赛者投票等"""

    status_code = 409


class AlreadyVoted(ConflictError):
    """该玩家已经为这个提示词投过票"""

    pass


class InBattle(ConflictError):
    """参赛者不能为自己所在的对决投票"""

    pass


class PreconditionError(GameError):
    """游戏状态不满足操作的前置条件"""

    status_code = 400
