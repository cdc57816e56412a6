"""Centralized imports for the HTTP service (app)."""

# Standard library
import asyncio
import contextlib
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

# External
from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from openai import OpenAI
from pydantic import BaseModel, Field

__all__ = [
    "APIRouter",
    "Any",
    "BaseModel",
    "CORSMiddleware",
    "Dict",
    "FastAPI",
    "Field",
    "HTTPException",
    "Iterator",
    "List",
    "OpenAI",
    "Optional",
    "Path",
    "Query",
    "asyncio",
    "contextlib",
    "load_dotenv",
    "logging",
    "os",
    "time",
]
