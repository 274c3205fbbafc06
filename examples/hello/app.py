"""Hello — the routing patterns in one small app.

Demonstrates:
- JSON, text and HTML responses
- Named params (``/user/:name/books/:title``)
- Optional params (``/user/:name?``)
- Trailing and mid-pattern wildcards (``/admin/*all``, ``/v1/*brand/shop/*name``)
- Reading a JSON request body

Run:
    cd examples/hello && python app.py
"""

from typing import Any, TypedDict

from switchyard import App, AppConfig, Context


class Locals(TypedDict, total=False):
    user: str


app: App[Locals] = App(AppConfig(port=3000, server_header="switchyard"))


@app.get("/hello")
def hello(ctx: Context[Locals]) -> Any:
    return ctx.json({"hello": "hello"})


@app.post("/hello")
async def echo(ctx: Context[Locals]) -> Any:
    body = await ctx.request.json()
    return ctx.json(body)


@app.get("/text")
def text(ctx: Context[Locals]) -> Any:
    return ctx.text("lorem ipsum", status=404)


@app.get("/user/:name/books/:title")
def book(ctx: Context[Locals], params: dict[str, str]) -> Any:
    return ctx.json({"name": params["name"], "title": params["title"]})


@app.get("/user/:name?")
def user(ctx: Context[Locals], params: dict[str, str | None]) -> Any:
    return ctx.json({"name": params["name"]})


@app.get("/admin/*all")
def admin(ctx: Context[Locals], params: dict[str, str]) -> Any:
    return ctx.json({"name": params["all"]})


@app.get("/v1/*brand/shop/*name")
def shop(ctx: Context[Locals], params: dict[str, str]) -> Any:
    return ctx.json({"params": params})


@app.get("/")
def index(ctx: Context[Locals]) -> Any:
    return ctx.html("Welcome to the switchyard app server")


if __name__ == "__main__":
    app.run()
