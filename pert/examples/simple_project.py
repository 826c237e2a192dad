from datetime import date

from pert.services.planner import ProjectPlanner
from pert.utils.dates import format_date
from pert.utils.logger import configure_logging


def create_sample_project():
    planner = ProjectPlanner("Website relaunch")
    planner.set_project_dates(start=date(2025, 4, 1), end=date(2025, 6, 30))

    # Define resources
    dev = planner.add_resource(name="Developers", amount=10, concurrency=2)
    budget = planner.add_resource(name="Budget", amount=50000)

    # Create milestones
    design = planner.add_milestone("Design approved", end=date(2025, 4, 20))
    backend = planner.add_milestone("Backend ready", end=date(2025, 5, 25))
    frontend = planner.add_milestone("Frontend ready")
    launch = planner.add_milestone("Launch", start=date(2025, 6, 15), critical=True)

    planner.set_critical(backend, True)

    # Connect milestones
    planner.add_dependency(design, backend)
    planner.add_dependency(design, frontend)
    planner.add_dependency(backend, launch)
    planner.add_dependency(frontend, launch)

    # Allocate resources
    planner.set_allocation(design, budget, 8000)
    planner.set_allocation(backend, dev, 4)
    planner.set_allocation(backend, budget, 20000)
    planner.set_allocation(frontend, dev, 3)
    planner.set_allocation(frontend, budget, 15000)
    planner.set_allocation(launch, dev, 1)

    # Print report
    print("PERT Project Report")
    print("===================")
    print(f"Project: {planner.name}")
    print(f"Project Start Date: {format_date(planner.graph.envelope.start)}")
    print(f"Project End Date: {format_date(planner.graph.envelope.end)}")

    print("\nDate windows:")
    windows = planner.date_windows()
    for milestone_id, milestone in planner.graph.milestones.items():
        window = windows[milestone_id]
        print(f"  {milestone.name}")
        print(f"    Start: {window['start']['min'] or '-'} .. {window['start']['max'] or '-'}")
        print(f"    End:   {window['end']['min'] or '-'} .. {window['end']['max'] or '-'}")

    print("\nConstraint violations:")
    for violation in planner.constraint_violations:
        print(f"  {violation.describe()}")
    if not planner.constraint_violations:
        print("  None")

    print("\nResource feasibility:")
    flags = planner.feasibility_flags()
    for milestone_id, resources in flags.items():
        for resource_id, kinds in resources.items():
            print(
                f"  {planner.graph.milestones[milestone_id].name}: "
                f"{planner.graph.resources[resource_id].display_name} ({', '.join(kinds)})"
            )
    if not flags:
        print("  All milestones feasible")

    print("\nTotal cost:")
    for row in planner.stats_rows():
        print(f"  {row.name}: {row.value}")

    # Commit the baseline, then slip the backend by a week
    planner.start_project()
    planner.set_milestone_dates(backend, end=date(2025, 6, 1))
    planner.set_allocation(backend, dev, 5)

    report = planner.requirement_changes(now=date(2025, 4, 10))
    print()
    print(report.to_text(title=f"{planner.name}: requirement changes"))

    return planner


if __name__ == "__main__":
    configure_logging("pert")
    create_sample_project()
