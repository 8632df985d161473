"""
Schémas Pydantic pour le suivi de pratique et les séries.
"""

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel


class PracticeLogRequest(BaseModel):
    student_id: uuid.UUID


class PracticeLogResponse(BaseModel):
    success: bool = True
    new_streak: int
    streak_award: Optional[int] = None   # Tickets crédités si un palier est atteint


class StreakResponse(BaseModel):
    student_id: uuid.UUID
    current_streak: int
    longest_streak: int
    last_log_date: Optional[date] = None
