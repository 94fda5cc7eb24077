from typing import Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

import config
from reqsmith.factory import RequestFactory, RequestKind, get_default_factory, is_no_body_method
from reqsmith.parser import MessageParser

app = FastAPI(title="reqsmith")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class RawMessage(BaseModel):
    raw: str
    target: Optional[str] = None

class RequestParts(BaseModel):
    method: str
    url: str
    headers: Dict[str, str] = {}
    body: Optional[str] = None
    fields: Optional[Dict[str, Union[str, List[str]]]] = None
    protocol_version: str = config.DEFAULT_PROTOCOL_VERSION

class RequestOut(BaseModel):
    kind: str
    method: str
    url: str
    protocol: str
    protocol_version: str
    headers: List[List[str]]
    response_body: Optional[str] = None
    body: Optional[str] = None
    chunked: bool = False
    fields: List[List[str]] = []
    files: Dict[str, str] = {}

class MethodInfo(BaseModel):
    method: str
    kind: str
    has_body: bool

def get_factory() -> RequestFactory:
    return get_default_factory()

@app.post("/requests/parse", response_model=RequestOut)
async def parse_message(message: RawMessage, factory: RequestFactory = Depends(get_factory)):
    if message.target:
        # Same variants, different URL base
        factory = RequestFactory(
            variants=factory.variants,
            parser=MessageParser(default_scheme=factory.parser.default_scheme, target=message.target,
                                 debug=factory.debug),
            verbose=factory.verbose,
            debug=factory.debug,
        )
    request = factory.from_message(message.raw)
    if request is None:
        raise HTTPException(status_code=422, detail="Unparseable HTTP request message")
    return request.to_dict()

@app.post("/requests", response_model=RequestOut)
async def create_request(parts: RequestParts, factory: RequestFactory = Depends(get_factory)):
    if parts.body is not None and parts.fields is not None:
        raise HTTPException(status_code=422, detail="Send either 'body' or 'fields', not both")
    body = parts.fields if parts.fields is not None else parts.body
    try:
        request = factory.create(parts.method, parts.url, parts.headers, body)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    request.set_protocol_version(parts.protocol_version)
    return request.to_dict()

@app.get("/methods/{method}", response_model=MethodInfo)
async def describe_method(method: str):
    no_body = is_no_body_method(method)
    kind = RequestKind.NO_BODY if no_body else RequestKind.ENTITY_ENCLOSING
    return {"method": method.upper(), "kind": kind.value, "has_body": not no_body}

if __name__ == "__main__":
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
