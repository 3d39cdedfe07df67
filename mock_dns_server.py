import itertools
import random
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from aiohttp import web
from loguru import logger


class MockDnsServer:
    def __init__(
        self,
        completion_time: float = 10.0,
        error_rate: float = 0.1,
        auth_token: Optional[str] = None,
    ):
        self.completion_time = completion_time
        self.error_rate = error_rate
        self.auth_token = auth_token
        self.domains: Dict[int, Dict[str, Any]] = {}
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.status_requests = 0
        self._ids = itertools.count(1000)
        self._runner: Optional[web.AppRunner] = None
        self.base_url = ""
        self.app = web.Application(middlewares=[self._check_token])
        self.app.router.add_get("/domains", self.handle_list_domains)
        self.app.router.add_get("/domains/{domain_id}", self.handle_get_domain)
        self.app.router.add_post("/domains", self.handle_create_domains)
        self.app.router.add_post("/domains/import", self.handle_import_domain)
        self.app.router.add_put("/domains", self.handle_update_domains)
        self.app.router.add_delete("/domains", self.handle_delete_domains)
        self.app.router.add_get("/status/{job_id}", self.handle_status)
        self.logger = logger

    @web.middleware
    async def _check_token(self, request, handler):
        if self.auth_token and request.headers.get("X-Auth-Token") != self.auth_token:
            return web.json_response({"code": 401, "message": "Unauthorized"}, status=401)
        return await handler(request)

    def _accept(self, request, verb: str, work: Callable[[], Dict[str, Any]]):
        job_id = str(uuid.uuid4())
        self.jobs[job_id] = {"started": datetime.now(), "verb": verb, "work": work}
        self.logger.info(f"Accepted {verb} job {job_id}")
        return web.json_response(
            {
                "jobId": job_id,
                "status": "RUNNING",
                "verb": verb,
                "callbackUrl": f"{self.base_url}/status/{job_id}",
                "requestUrl": f"{self.base_url}{request.path_qs}",
            },
            status=202,
        )

    async def handle_list_domains(self, request):
        name = request.query.get("name")
        domains = [d for d in self.domains.values() if name is None or d["name"] == name]
        return web.json_response({"domains": domains, "totalEntries": len(domains)})

    async def handle_get_domain(self, request):
        try:
            domain = self.domains.get(int(request.match_info["domain_id"]))
        except ValueError:
            domain = None
        if domain is None:
            return web.json_response({"code": 404, "message": "Not found"}, status=404)
        return web.json_response(domain)

    async def handle_create_domains(self, request):
        body = await request.json()
        requested = body.get("domains", [])

        def work():
            names = {d["name"] for d in self.domains.values()}
            for item in requested:
                if item["name"] in names:
                    return {
                        "error": {
                            "code": "DUPLICATE",
                            "message": f"{item['name']} already exists",
                        }
                    }
            created = []
            for item in requested:
                domain = {"id": next(self._ids), "ttl": 3600, **item}
                self.domains[domain["id"]] = domain
                created.append(domain)
            return {"response": {"domains": created}}

        return self._accept(request, "POST", work)

    async def handle_import_domain(self, request):
        body = await request.json()
        item = body["domains"][0]

        def work():
            # first "$ORIGIN name." line names the zone
            name = "imported.example.com"
            for line in item["contents"].splitlines():
                if line.startswith("$ORIGIN"):
                    name = line.split()[1].rstrip(".")
                    break
            domain = {"id": next(self._ids), "name": name, "ttl": 3600}
            self.domains[domain["id"]] = domain
            return {"response": {"domains": [domain]}}

        return self._accept(request, "POST", work)

    async def handle_update_domains(self, request):
        body = await request.json()

        def work():
            for item in body.get("domains", []):
                if item["id"] not in self.domains:
                    return {"error": {"code": 404, "message": f"Domain {item['id']} not found"}}
                self.domains[item["id"]].update(item)
            return {}

        return self._accept(request, "PUT", work)

    async def handle_delete_domains(self, request):
        ids = [int(i) for i in request.query.getall("id", [])]

        def work():
            for domain_id in ids:
                self.domains.pop(domain_id, None)
            return {}

        return self._accept(request, "DELETE", work)

    async def handle_status(self, request):
        self.status_requests += 1
        job_id = request.match_info["job_id"]
        job = self.jobs.get(job_id)
        if job is None:
            return web.json_response({"code": 404, "message": "Job not found"}, status=404)

        if "result" not in job:
            elapsed = (datetime.now() - job["started"]).total_seconds()
            if elapsed < self.completion_time:
                self.logger.info(f"Returning running status (elapsed: {elapsed:.1f}s)")
                return web.json_response({"jobId": job_id, "status": "RUNNING"})

            if random.random() < self.error_rate:
                job["result"] = {"error": {"code": 500, "message": "Internal failure"}}
            else:
                job["result"] = job["work"]()

        result = job["result"]
        state = "ERROR" if "error" in result else "COMPLETED"
        self.logger.info(f"Returning {state.lower()} status for job {job_id}")
        return web.json_response({"jobId": job_id, "status": state, "verb": job["verb"], **result})

    async def start(self, port: int = 8080):
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "localhost", port)
        await site.start()
        self.base_url = f"http://localhost:{port}"
        self.logger.info(f"Server started on port {port}")
        return site

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
