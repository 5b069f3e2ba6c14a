from fastapi import APIRouter

from . import departments, export, locations, members, rules, schedules, semesters, system, time_slots, timetables

api_router = APIRouter()

api_router.include_router(system.router, prefix="/system", tags=["system"])
api_router.include_router(semesters.router, prefix="/semesters", tags=["semesters"])
api_router.include_router(time_slots.router, prefix="/time-slots", tags=["time_slots"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(members.router, prefix="/members", tags=["members"])
api_router.include_router(locations.router, prefix="/locations", tags=["locations"])
api_router.include_router(timetables.router, prefix="/timetables", tags=["timetables"])
api_router.include_router(rules.router, prefix="/rules", tags=["rules"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
api_router.include_router(export.router, prefix="/export", tags=["export"])
