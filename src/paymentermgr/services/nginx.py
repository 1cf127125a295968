"""Nginx virtual host management."""

import os
from pathlib import Path

from paymentermgr.models import StepResult


class NginxService:
    """Writes, enables, validates and removes the Paymenter vhost."""

    def __init__(self, config, runner, logger):
        self.config = config
        self.runner = runner
        self.logger = logger

    def render_vhost(self, server_name: str) -> str:
        return f"""
server {{
    listen 80;
    listen [::]:80;
    server_name {server_name};
    root {self.config.install_dir}/public;

    index index.php;

    add_header X-Frame-Options "SAMEORIGIN";
    add_header X-XSS-Protection "1; mode=block";
    add_header X-Content-Type-Options "nosniff";
    add_header Referrer-Policy "no-referrer-when-downgrade";

    location / {{
        try_files $uri $uri/ /index.php?$query_string;
    }}

    location ~ \\.php$ {{
        include snippets/fastcgi-php.conf;
        fastcgi_pass unix:{self.config.php_fpm_socket};
    }}

    location ~ /\\.ht {{
        deny all;
    }}
}}
""".lstrip()

    def configure(self, server_name: str) -> StepResult:
        vhost_path: Path = self.config.vhost_path
        vhost_link: Path = self.config.vhost_link

        try:
            vhost_path.parent.mkdir(parents=True, exist_ok=True)
            with open(vhost_path, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(self.render_vhost(server_name))

            vhost_link.parent.mkdir(parents=True, exist_ok=True)
            if os.path.lexists(vhost_link):
                os.remove(vhost_link)
            os.symlink(vhost_path, vhost_link)

            default_site = Path(self.config.nginx_enabled_dir) / "default"
            if self.config.disable_default_site and os.path.lexists(default_site):
                os.remove(default_site)
                self.logger.info("Disabled nginx default site %s", default_site)
        except OSError as exc:
            return StepResult.failure(f"Could not write nginx configuration: {exc}")

        return self.test_config()

    def test_config(self) -> StepResult:
        result = self.runner.run(["nginx", "-t"])
        if not result.ok:
            return StepResult.failure(
                f"Nginx configuration test failed: {result.message}", result.exit_code, result.output
            )
        return StepResult.success("Nginx configured successfully")

    def artifacts(self):
        return [self.config.vhost_link, self.config.vhost_path]
