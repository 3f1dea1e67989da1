from fastapi import APIRouter
from app.api.routes.destinations import destinations_router
from app.api.routes.letters import letters_router
from app.api.routes.professor import professor_router
from app.api.routes.requests import requests_router
from app.api.routes.student import student_router
from app.api.routes.templates import templates_router

api_router = APIRouter()

api_router.include_router(requests_router)
api_router.include_router(destinations_router)
api_router.include_router(letters_router)
api_router.include_router(templates_router)
api_router.include_router(student_router)
api_router.include_router(professor_router)
