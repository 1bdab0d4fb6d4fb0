from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr

# ───────── Words ─────────
class DefinitionItem(BaseModel):
    definition: str = ""
    example: str = ""
    synonyms: List[str] = []
    antonyms: List[str] = []

class Meaning(BaseModel):
    partOfSpeech: str = ""
    definitions: List[DefinitionItem] = []
    synonyms: List[str] = []
    antonyms: List[str] = []

class WordDefinition(BaseModel):
    word: str
    phonetic: str = ""
    phoneticAudio: str = ""
    origin: str = ""
    meanings: List[Meaning] = []
    sourceUrls: List[str] = []
    cached: bool = False

# ───────── Auth ─────────
class RegisterIn(BaseModel):
    # format checks live in the auth service so the messages stay stable
    email: Optional[str] = None
    password: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None

class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class Preferences(BaseModel):
    theme: Literal["light", "dark"] = "light"
    dailyWordNotifications: bool = True

class PreferencesIn(BaseModel):
    theme: Optional[Literal["light", "dark"]] = None
    dailyWordNotifications: Optional[bool] = None

class ProfileIn(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    preferences: Optional[PreferencesIn] = None

class UserOut(BaseModel):
    id: int
    email: EmailStr
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    fullName: str = ""
    lastLogin: Optional[datetime] = None

class AuthOut(BaseModel):
    token: str
    user: UserOut

class ProfileOut(BaseModel):
    id: int
    email: EmailStr
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    fullName: str = ""
    preferences: Preferences
    createdAt: Optional[datetime] = None
    lastLogin: Optional[datetime] = None

# ───────── User word lists ─────────
class WordIn(BaseModel):
    word: Optional[str] = None

class LikedWord(BaseModel):
    word: str
    dateAdded: datetime

class SearchHistoryItem(BaseModel):
    word: str
    searchedAt: datetime

class LikedWordsOut(BaseModel):
    message: str
    likedWords: List[LikedWord]

class MessageOut(BaseModel):
    message: str

class UserStats(BaseModel):
    totalLikedWords: int
    totalSearches: int
    recentSearches: List[str]
    memberSince: Optional[datetime] = None
    lastActivity: Optional[datetime] = None

# ───────── Analytics ─────────
class WordCount(BaseModel):
    word: str
    searchCount: int = 0
    likeCount: int = 0
    lastSearched: Optional[datetime] = None

class WordOfTheDay(BaseModel):
    word: str
    phonetic: str = ""
    definition: str
    example: Optional[str] = None
    partOfSpeech: Optional[str] = None
    searchCount: Optional[int] = None
    isDefault: bool

class PlatformStats(BaseModel):
    totalWords: int = 0
    totalUsers: int = 0
    totalSearches: int = 0
    totalLikes: int = 0
