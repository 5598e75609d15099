"""
游戏管理API路由
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from smacktalk.core.database import get_db
from smacktalk.core.exceptions import GameError
from smacktalk.services.game_service import GameService
from smacktalk.services.chat_service import ChatService
from smacktalk.api.websocket_routes import broadcast_room_state, get_websocket_manager
from smacktalk.schemas.game_schemas import (
    AddBotRequest,
    BotAnswerRequest,
    ChatMessageCreate,
    CreateGameResponse,
    GameResponse,
    JoinGameRequest,
    JoinGameResponse,
    MessageInfo,
    PlayerAction,
    RoomState,
    SubmitAnswerRequest,
    SubmitVoteRequest,
    SuggestionCreate,
    SuggestionInfo,
)

router = APIRouter()

def _actor(action: Optional[PlayerAction]) -> Optional[int]:
    return action.actor_id if action else None

def _http_error(e: GameError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)

@router.post("/create", response_model=CreateGameResponse)
async def create_game(db: Session = Depends(get_db)):
    """创建新房间"""
    game_service = GameService(db)
    try:
        return await game_service.create_game()
    except GameError as e:
        raise _http_error(e)

@router.post("/join", response_model=JoinGameResponse)
async def join_game(
    request: JoinGameRequest,
    db: Session = Depends(get_db)
):
    """通过房间码加入"""
    game_service = GameService(db)
    try:
        result = await game_service.join_game(request.room_code, request.player_name)
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, result.game_id)
    return result

@router.get("/room/{room_code}", response_model=RoomState)
async def get_room_state(
    room_code: str,
    db: Session = Depends(get_db)
):
    """获取房间快照"""
    game_service = GameService(db)
    state = await game_service.get_room_state(room_code)
    if not state:
        raise HTTPException(status_code=404, detail="Room not found")
    return state

@router.get("/{game_id}", response_model=GameResponse)
async def get_game(
    game_id: int,
    db: Session = Depends(get_db)
):
    """获取游戏信息"""
    game_service = GameService(db)
    game = await game_service.get_game(game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game

@router.post("/{game_id}/start")
async def start_game(
    game_id: int,
    action: Optional[PlayerAction] = None,
    db: Session = Depends(get_db)
):
    """开始游戏"""
    game_service = GameService(db)
    try:
        result = await game_service.start_game(game_id, _actor(action))
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return {"message": "Game started", "game_id": game_id, **result}

@router.post("/{game_id}/answers")
async def submit_answer(
    game_id: int,
    request: SubmitAnswerRequest,
    db: Session = Depends(get_db)
):
    """提交答案"""
    game_service = GameService(db)
    try:
        submission_id = await game_service.submit_answer(
            game_id, request.player_id, request.prompt_id, request.text, request.attack_type
        )
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return {"submission_id": submission_id}

@router.post("/{game_id}/bots", response_model=JoinGameResponse)
async def add_bot(
    game_id: int,
    request: Optional[AddBotRequest] = None,
    db: Session = Depends(get_db)
):
    """VIP在大厅添加机器人"""
    game_service = GameService(db)
    request = request or AddBotRequest()
    try:
        result = await game_service.add_bot(game_id, request.actor_id, request.name)
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return result

@router.post("/{game_id}/bot-answers")
async def submit_answer_for_bot(
    game_id: int,
    request: BotAnswerRequest,
    db: Session = Depends(get_db)
):
    """角落人替机器人队长提交答案"""
    game_service = GameService(db)
    try:
        submission_id = await game_service.submit_answer_for_bot(
            game_id, request.player_id, request.prompt_id, request.text, request.attack_type
        )
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return {"submission_id": submission_id}

@router.post("/{game_id}/votes")
async def submit_vote(
    game_id: int,
    request: SubmitVoteRequest,
    db: Session = Depends(get_db)
):
    """投票"""
    game_service = GameService(db)
    try:
        vote_id = await game_service.submit_vote(
            game_id, request.player_id, request.prompt_id, request.submission_id
        )
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return {"vote_id": vote_id}

@router.post("/{game_id}/next-battle", response_model=GameResponse)
async def next_battle(
    game_id: int,
    action: Optional[PlayerAction] = None,
    db: Session = Depends(get_db)
):
    """进入下一场对决"""
    game_service = GameService(db)
    try:
        game = await game_service.next_battle(game_id, _actor(action))
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return game

@router.post("/{game_id}/next-round", response_model=GameResponse)
async def next_round(
    game_id: int,
    action: Optional[PlayerAction] = None,
    db: Session = Depends(get_db)
):
    """开始下一轮"""
    game_service = GameService(db)
    try:
        game = await game_service.next_round(game_id, _actor(action))
    except GameError as e:
        raise _http_error(e)
    await broadcast_room_state(db, game_id)
    return game

@router.post("/{game_id}/messages", response_model=MessageInfo)
async def send_message(
    game_id: int,
    request: ChatMessageCreate,
    db: Session = Depends(get_db)
):
    """发送聊天消息"""
    chat_service = ChatService(db, get_websocket_manager())
    try:
        return await chat_service.send_message(game_id, request.player_id, request.text)
    except GameError as e:
        raise _http_error(e)

@router.get("/{game_id}/messages", response_model=List[MessageInfo])
async def list_messages(
    game_id: int,
    db: Session = Depends(get_db)
):
    """获取聊天记录"""
    chat_service = ChatService(db)
    try:
        return await chat_service.list_messages(game_id)
    except GameError as e:
        raise _http_error(e)

@router.post("/{game_id}/suggestions", response_model=SuggestionInfo)
async def submit_suggestion(
    game_id: int,
    request: SuggestionCreate,
    db: Session = Depends(get_db)
):
    """角落人提交答案建议"""
    chat_service = ChatService(db, get_websocket_manager())
    try:
        return await chat_service.submit_suggestion(
            game_id, request.player_id, request.prompt_id, request.text
        )
    except GameError as e:
        raise _http_error(e)

@router.get("/", response_model=List[GameResponse])
async def list_games(
    skip: int = 0,
    limit: int = 10,
    db: Session = Depends(get_db)
):
    """获取游戏列表"""
    game_service = GameService(db)
    return await game_service.list_games(skip=skip, limit=limit)
