"""Vanshavali - Family Lineage Guide Backend.

FastAPI server exposing the family tree, relationship calculator and the
lineage assistant.
"""

import logging
import os
from collections import OrderedDict
from contextlib import asynccontextmanager

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("vanshavali")

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from dotenv import load_dotenv

from assistant import ConversationContext, LineageAssistant
from family_tree import (
    EmptyInputError,
    FamilyTreeStore,
    IndexedPerson,
    PersonIndex,
    build_descendant_tree,
    get_extended_lineage_ids,
    get_person_data,
)
from gedcom_export import export_gedcom
from name_matching import SEARCH_MODES, find_person_by_name, search_members
from relationship import describe_relationship, relate
from storage import FamilyDataStorage

# Load environment variables
load_dotenv()

DEFAULT_BASE_DATA = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "sample-family.json",
)
DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173"
DEFAULT_MAX_SESSIONS = 1000

# Global state
family_store: FamilyTreeStore | None = None
lineage_assistant: LineageAssistant | None = None
conversations: OrderedDict[str, ConversationContext] = OrderedDict()
max_sessions = DEFAULT_MAX_SESSIONS


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - load the family data and build the index."""
    global family_store, lineage_assistant, max_sessions

    base_path = os.getenv("VANSHAVALI_BASE_DATA", DEFAULT_BASE_DATA)
    edits_path = os.getenv("VANSHAVALI_EDITS_FILE", "family-edits.json")
    language = os.getenv("VANSHAVALI_LANGUAGE", "hi")
    max_sessions = int(os.getenv("VANSHAVALI_MAX_SESSIONS", str(DEFAULT_MAX_SESSIONS)))

    logger.info(f"Loading family data (base: {base_path}, edits: {edits_path})")
    storage = FamilyDataStorage(base_path, edits_path)
    family_store = FamilyTreeStore(storage=storage)
    try:
        family_store.rebuild(storage.load())
    except EmptyInputError:
        logger.error("No family data found in base data or local edits")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load family data: {e}")

    lineage_assistant = LineageAssistant(family_store, language=language)
    conversations.clear()
    logger.info(f"Lineage assistant ready (language: {language})")

    yield

    logger.info("Shutting down Vanshavali")


# Create FastAPI app
app = FastAPI(
    title="Vanshavali",
    description="Family lineage guide: family tree, relationships and a lineage assistant",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("VANSHAVALI_CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class AskRequest(BaseModel):
    """Question for the lineage assistant."""
    prompt: str
    session_id: str = "default"


class AskResponse(BaseModel):
    """Assistant answer, plus the member to highlight when the answer points at one."""
    answer: str
    context_person_id: int | None = None
    focus_person_id: int | None = None


class AddMemberRequest(BaseModel):
    """A new child of an existing member."""
    model_config = ConfigDict(populate_by_name=True)

    parent_id: int = Field(alias="parentId")
    name: str
    name_en: str | None = Field(default=None, alias="nameEn")
    birth_year: int | None = Field(default=None, alias="birthYear")


class AddMemberResponse(BaseModel):
    message: str
    person: dict
    warnings: list[str] = []


def _require_index() -> PersonIndex:
    index = family_store.index if family_store else None
    if index is None:
        logger.warning("Request made without family data loaded")
        raise HTTPException(status_code=503, detail="No family data loaded.")
    return index


def _lookup(index: PersonIndex, identifier: str) -> IndexedPerson:
    """Find a member by id or by exact name."""
    identifier = identifier.strip()
    person = index.get(int(identifier)) if identifier.isdigit() else None
    if person is None:
        person = find_person_by_name(index, identifier)
    if person is None:
        raise HTTPException(status_code=404, detail=f"Person not found: '{identifier}'")
    return person


# Endpoints

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "data_loaded": family_store is not None and family_store.index is not None,
    }


@app.get("/stats")
async def get_stats():
    """Member count, generations and any data integrity issues."""
    index = _require_index()
    return {
        "totalMembers": index.total_members,
        "maxGeneration": index.max_generation,
        "generations": {gen: len(members) for gen, members in sorted(index.generations.items())},
        "integrityIssues": [
            {"kind": i.kind, "personId": i.person_id, "message": i.message}
            for i in family_store.integrity_issues
        ],
    }


@app.get("/members")
async def get_members():
    """Get all members reachable from the root."""
    index = _require_index()
    members = [get_person_data(index, p) for p in index]
    logger.info(f"Returning {len(members)} members")
    return {"members": members}


@app.get("/members/{person_id}")
async def get_member(person_id: int):
    index = _require_index()
    person = index.get(person_id)
    if not person:
        raise HTTPException(status_code=404, detail=f"Person with ID {person_id} not found")
    data = get_person_data(index, person)
    data["children"] = [get_person_data(index, c) for c in index.children_of(person)]
    return data


@app.post("/members", response_model=AddMemberResponse)
async def add_member(request: AddMemberRequest):
    """Add a new member under an existing parent."""
    _require_index()
    logger.info(f"Adding member '{request.name}' under parent {request.parent_id}")
    try:
        result = family_store.add_member(
            parent_id=request.parent_id,
            name=request.name,
            name_en=request.name_en,
            birth_year=request.birth_year,
        )
    except ValueError as e:
        logger.warning(f"Could not add member: {e}")
        status = 404 if "not found" in str(e) else 400
        raise HTTPException(status_code=status, detail=str(e))

    record = result["record"]
    return AddMemberResponse(
        message=f"{record.name} added to the family tree",
        person=record.to_dict(),
        warnings=result["warnings"],
    )


@app.get("/generations/{generation}")
async def get_generation(generation: int):
    index = _require_index()
    return {
        "generation": generation,
        "members": [get_person_data(index, p) for p in index.members_of_generation(generation)],
    }


@app.get("/search")
async def search(q: str = Query(min_length=1), mode: str = Query(default="all", alias="filter")):
    """Search members by name, father's name or birth year."""
    index = _require_index()
    if mode not in SEARCH_MODES:
        raise HTTPException(status_code=400, detail=f"filter must be one of: {', '.join(SEARCH_MODES)}")
    results = search_members(index, q, mode)
    logger.info(f"Search '{q}' ({mode}) returned {len(results)} results")
    return {"results": [get_person_data(index, p) for p in results]}


@app.get("/tree")
async def get_full_tree(max_depth: int = Query(default=20, le=50)):
    """Get the descendant tree from the root ancestor."""
    index = _require_index()
    return {"tree": build_descendant_tree(index, index.root_id, max_depth)}


@app.get("/tree/{person_id}")
async def get_descendant_tree(person_id: int, max_depth: int = Query(default=10, le=50)):
    """Get the descendant tree for a specific person."""
    index = _require_index()
    logger.info(f"Building descendant tree for person_id={person_id}, max_depth={max_depth}")
    tree = build_descendant_tree(index, person_id, max_depth)
    if not tree:
        raise HTTPException(status_code=404, detail=f"Person with ID {person_id} not found")
    return {"tree": tree}


@app.get("/lineage/{person_id}")
async def get_lineage(person_id: int):
    """Ids of the person's ancestors, their siblings, and the person's descendants."""
    index = _require_index()
    if person_id not in index:
        raise HTTPException(status_code=404, detail=f"Person with ID {person_id} not found")
    return {"personId": person_id, "lineageIds": get_extended_lineage_ids(index, person_id)}


@app.get("/relationship")
async def get_relationship(person_a: str, person_b: str):
    """How person_b is related to person_a. Accepts ids or exact names."""
    index = _require_index()
    a = _lookup(index, person_a)
    b = _lookup(index, person_b)

    result = relate(index, a, b)
    language = lineage_assistant.language
    return {
        "relation": result.kinship.value,
        "term": result.term(language),
        "description": describe_relationship(result, language),
        "commonAncestor": get_person_data(index, result.common_ancestor) if result.common_ancestor else None,
        "generationDifference": result.generation_difference,
    }


@app.post("/ask", response_model=AskResponse)
async def ask(request: AskRequest):
    """Ask the lineage assistant a question."""
    logger.info(
        f"Assistant query: '{request.prompt[:50]}...'" if len(request.prompt) > 50
        else f"Assistant query: '{request.prompt}'"
    )
    focus: list[int] = []
    context = conversations.get(request.session_id)
    answer, context = lineage_assistant.resolve(request.prompt, context, show_person=focus.append)
    conversations[request.session_id] = context
    conversations.move_to_end(request.session_id)
    while len(conversations) > max_sessions:
        evicted, _ = conversations.popitem(last=False)
        logger.debug(f"Dropped conversation context for session '{evicted}'")

    return AskResponse(
        answer=answer,
        context_person_id=context.person_id,
        focus_person_id=focus[-1] if focus else None,
    )


@app.get("/export", response_class=PlainTextResponse)
async def export_members():
    """Download the member list as a data.js snippet."""
    _require_index()
    return PlainTextResponse(
        family_store.export_snippet(),
        media_type="text/javascript",
        headers={"Content-Disposition": 'attachment; filename="data.js"'},
    )


@app.get("/export/gedcom", response_class=PlainTextResponse)
async def export_members_gedcom():
    _require_index()
    return PlainTextResponse(
        export_gedcom(family_store.records),
        headers={"Content-Disposition": 'attachment; filename="family.ged"'},
    )


@app.post("/reset")
async def reset_members():
    """Discard local edits and reload the base member list."""
    try:
        index = family_store.reset()
    except EmptyInputError:
        raise HTTPException(status_code=503, detail="Base data is empty; no family data loaded.")
    return {"message": "Family data reset to base records", "totalMembers": index.total_members}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
