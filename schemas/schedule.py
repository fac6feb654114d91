from typing import Optional

from schemas.users import CamelModel


class ScheduleRequest(CamelModel):
    date_and_time: str

class InterviewResponse(CamelModel):
    id: str
    date_and_time: str
    peer_first: str
    peer_second: Optional[str] = None
    token: str
    channel_name: str
    available: bool

class ChannelResponse(CamelModel):
    token: str
    channel_name: str
