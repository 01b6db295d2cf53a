# chirouter

A lightweight HTTP request router. Routes are stored in a radix tree that
supports static segments, named parameters (`{id}`), regular-expression
parameters (`{id:[0-9]+}`) and trailing catch-alls (`*`). Routers compose:
middleware stacks, inline groups and mounted sub-routers all work together.

There are no runtime dependencies beyond the standard library.

## Handlers and middleware

A handler is any callable taking `(w, r)`: a `chirouter.handlers.Response` to
write into and a `chirouter.handlers.Request` to read from. A middleware is a
callable that takes the next handler and returns a new handler.

```python
from chirouter.handlers import serve, url_param
from chirouter.mux import Mux


def hello(w, r):
    w.write(f"hello {url_param(r, 'name')}")


def passthrough(next_handler):
    def handler(w, r):
        next_handler(w, r)
    return handler


router = Mux()
router.use(passthrough)
router.get("/hello/{name}", hello)

response = serve(router, "GET", "/hello/world")
print(response.status, response.text)  # 200 hello world
```

`Request` is a frozen dataclass with `method`, `path`, `headers` and a
`context` mapping; `with_value(key, value)` returns a copy with one more
context value and `value(key)` reads one back. Middleware passes extra data to
later handlers this way.

`Response` records `status`, `headers` and `body` (a `bytearray`).
`write_header(status)` sets the status once; later calls are ignored.
`write(data)` accepts `str` or `bytes`, sets status 200 if none was set, and
appends to the body. `text` decodes the body as UTF-8.

`serve(handler, method, path)` builds a fresh request, runs the handler and
returns the response. `url_param(request, key)` returns a captured parameter
(or `''`), and `route_context(request)` returns the request's
`chirouter.tree.RouteContext`.

`chain(mw1, mw2, ..., endpoint)` wraps an endpoint in middlewares, the first
one outermost, and returns a `ChainHandler` exposing `middlewares` and
`endpoint`.

## Routing patterns

| Pattern                     | Matches                                   |
|-----------------------------|-------------------------------------------|
| `/articles`                 | exactly `/articles`                        |
| `/articles/{id}`            | one path segment, captured as `id`         |
| `/articles/{id:[0-9]+}`     | a segment matching the regular expression  |
| `/files/{name}.{ext}`       | parameters split on a delimiter            |
| `/static/*`                 | everything after `/static/`, as `*`        |

Regular expressions are anchored at both ends. Paths are matched as given,
without percent-decoding; any query string is dropped before matching.

Registering a route raises `ValueError` if the pattern does not begin with
`/`, if `*` is not the last element, if a `{` is not closed, if a parameter
name appears twice, or if a regular expression does not compile. Calling
`use()` after a route has been added raises `RuntimeError`.

## Composing routers

```python
api = Mux()
api.get("/", lambda w, r: w.write("articles"))
api.get("/{id}", lambda w, r: w.write(url_param(r, "id")))

root = Mux()
root.mount("/articles", api)

root.route("/users", lambda r: r.get("/{id}", lambda w, req: w.write("user")))

root.group(lambda g: (g.use(passthrough), g.get("/private", hello)))

root.with_middlewares(passthrough).get("/inline", hello)
```

- `mount(pattern, handler)` attaches a handler or another `Mux` below a
  pattern; mounting twice on the same pattern raises `ValueError`.
- `route(pattern, fn)` creates a new `Mux`, passes it to `fn` and mounts it.
- `group(fn)` and `with_middlewares(*mws)` return an inline router sharing the
  parent's tree, whose routes get the extra middlewares.

Route methods are `handle` (every method), `method(name, ...)`, and
`connect`, `delete`, `get`, `head`, `options`, `patch`, `post`, `put`,
`trace`. Custom responses for unmatched paths and unsupported methods are set
with `not_found` and `method_not_allowed`; mounted `Mux` sub-routers without
their own inherit the parent's. The defaults answer `404 page not found` and
an empty 405.

## Custom methods

```python
from chirouter.patterns import register_method

register_method("PURGE")
router.method("PURGE", "/cache", hello)
```

## Inspecting routes

`Mux.routes()` lists the registered routes as `chirouter.tree.Route` values
(`pattern`, `handlers` by method name, `sub_routes`). `Mux.match(rctx,
method, path)` tells whether a method and path would be routed, without
running a handler; pass a `RouteContext()`. `chirouter.walk.walk(router,
walk_fn)` calls `walk_fn(method, route, handler, *middlewares)` for every
method and full pattern across mounted sub-routers; an exception raised by
`walk_fn` stops the walk.

## What it does not do

The package routes calls made in-process; it has no HTTP server, socket
handling, or WSGI/ASGI adapter. To serve real traffic you build a `Request`
and `Response` from your server's request yourself and call the router with
them.