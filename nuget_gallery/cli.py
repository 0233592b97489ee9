"""
Command-line interface for the NuGet gallery tools.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import reporting
from .aggregator import GlobFileDiscovery, ProjectAggregator
from .config import GallerySettings
from .errors import NuGetGalleryError
from .handlers import get_package, get_projects
from .registry import FeedRegistry


logger = logging.getLogger(__name__)


def _build_parser(settings: GallerySettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query NuGet V2 feeds and list package references of .NET projects"
    )

    parser.add_argument(
        "--source",
        default=settings.default_source,
        help=f"Package source URL. Default: {settings.default_source}"
    )

    parser.add_argument(
        "--credential-provider-folder",
        default=settings.credential_provider_folder,
        help="Folder holding CredentialProvider.Microsoft; {user-profile} expands to the home directory"
    )

    parser.add_argument(
        "--proxy",
        default=settings.http_proxy,
        help="Proxy URL. Default: HTTPS_PROXY / HTTP_PROXY from the environment"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.timeout,
        help=f"HTTP timeout in seconds. Default: {settings.timeout}"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    projects = subparsers.add_parser("projects", help="List the package references of every project")
    projects.add_argument("--root", default=".", help="Workspace root. Default: current directory")
    projects.add_argument("--output-dir", default="./output", help="Output directory. Default: ./output")
    projects.add_argument("--csv", action="store_true", help="Export the project table as CSV")
    projects.add_argument("--json", action="store_true", help="Export the projects as JSON")

    search = subparsers.add_parser("search", help="Search the source for packages")
    search.add_argument("term", help="Search term")
    search.add_argument("--prerelease", action="store_true", help="Include prerelease versions")
    search.add_argument("--skip", type=int, default=0, help="Number of results to skip. Default: 0")
    search.add_argument("--take", type=int, default=20, help="Number of results to return. Default: 20")

    package = subparsers.add_parser("package", help="Show a package and its versions")
    package.add_argument("id", help="Package id")
    package.add_argument(
        "--other-source",
        action="append",
        default=[],
        help="Additional source tried before --source (repeatable)"
    )

    versions = subparsers.add_parser("versions", help="List the versions of a package")
    versions.add_argument("id", help="Package id")

    details = subparsers.add_parser("details", help="Show the dependencies of a package version")
    details.add_argument("url", help="Package version URL")

    outdated = subparsers.add_parser("outdated", help="Compare project packages with the newest versions")
    outdated.add_argument("--root", default=".", help="Workspace root. Default: current directory")
    outdated.add_argument("--output-dir", default="./output", help="Output directory. Default: ./output")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("nuget_gallery").setLevel(logging.DEBUG if verbose else logging.INFO)


async def _run(args: argparse.Namespace, settings: GallerySettings) -> None:
    async with FeedRegistry(
        credential_provider_folder=args.credential_provider_folder,
        proxy=args.proxy,
        timeout=args.timeout,
        credential_timeout=settings.credential_timeout,
    ) as registry:
        if args.command == "projects":
            aggregator = ProjectAggregator(GlobFileDiscovery(Path(args.root)))
            projects = await get_projects(aggregator)
            reporting.print_summary(projects)
            output_dir = Path(args.output_dir)
            if args.csv:
                print(f"Projects saved to: {reporting.export_projects_csv(projects, output_dir)}")
            if args.json:
                print(f"Projects saved to: {reporting.save_projects_json(projects, output_dir)}")

        elif args.command == "search":
            packages = await registry.get(args.source).search(
                args.term, args.prerelease, args.skip, args.take
            )
            for package in packages:
                print(f"{package.name} {package.version} ({package.total_downloads} downloads, "
                      f"{len(package.versions)} versions)")

        elif args.command == "package":
            response = await get_package(registry, args.source, args.id, args.other_source)
            if response.is_failure:
                raise NuGetGalleryError(response.error)
            package = response.package
            print(f"{package.name} {package.version}")
            print(f"Authors: {', '.join(package.authors)}")
            print(f"Description: {package.description}")
            for ref in package.versions:
                print(f"  {ref.version}  {ref.id}")

        elif args.command == "versions":
            for version in await registry.get(args.source).get_versions(args.id):
                print(version)

        elif args.command == "details":
            details = await registry.get(args.source).get_package_details(args.url)
            if not details.frameworks:
                print("No dependencies")
            for framework, dependencies in details.frameworks.items():
                print(framework or "(any framework)")
                for dependency in dependencies:
                    print(f"  {dependency.package} {dependency.version_range}")

        elif args.command == "outdated":
            aggregator = ProjectAggregator(GlobFileDiscovery(Path(args.root)))
            projects = await get_projects(aggregator)
            outdated = await reporting.find_outdated(projects, registry.get(args.source))
            if outdated.empty:
                print("No packages with known versions")
            else:
                print(outdated.to_string(index=False))
            print(f"\nResults saved to: {reporting.export_outdated_csv(outdated, Path(args.output_dir))}")


def main(argv=None):
    """Main entry point for the CLI."""
    try:
        settings = GallerySettings.from_env()
    except ValueError as e:
        print(f"Error: Invalid environment setting: {e}", file=sys.stderr)
        sys.exit(1)

    parser = _build_parser(settings)
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        asyncio.run(_run(args, settings))
    except NuGetGalleryError as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
