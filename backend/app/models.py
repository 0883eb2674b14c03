from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
Base = declarative_base()

class VideoStatus:
    INIT = "INIT"
    QUEUED = "QUEUED"
    RENDERING = "RENDERING"
    READY = "READY"
    ERROR = "ERROR"

    TERMINAL = (READY, ERROR)

class Video(Base):
    __tablename__ = "videos"
    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(String, default=VideoStatus.INIT, index=True)
    scheduled_at = Column(DateTime, nullable=True)
    script = Column(Text, nullable=True)
    hook = Column(Text, nullable=True)
    captions_on = Column(Boolean, nullable=True)
    hook_overlay_on = Column(Boolean, nullable=True)
    hook_pos = Column(String, nullable=True)
    render_service = Column(String, nullable=True)
    render_id = Column(String, nullable=True)
    file_url = Column(String, nullable=True)
    # error text when status is ERROR
    link = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

class Integration(Base):
    __tablename__ = "integrations"
    id = Column(Integer, primary_key=True, autoincrement=True)
    service = Column(String, nullable=False, index=True)
    api_key = Column(String, nullable=False)
    base_url = Column(String, nullable=True)
    presenter_id = Column(String, nullable=True)
    voice_id = Column(String, nullable=True)
    api_version = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
