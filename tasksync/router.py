"""Shared router that every tool module registers its routes on."""

from __future__ import annotations

from fastapi import APIRouter

api_router = APIRouter()
