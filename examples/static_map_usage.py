"""
Example usage of StaticMap for rendering static map images.

The examples download tiles from public tile servers; please respect their
usage policies (the default request limit of 2 follows the OSM policy).
"""

import logging
import os

from pystaticmap import StaticMap, RasterTileServer

OUTPUT_DIR = '/tmp'


def example_list_providers():
    """List all registered tile providers."""
    print("=" * 60)
    print("Example 1: List Available Providers")
    print("=" * 60)

    for provider in RasterTileServer.get_available_providers():
        info = RasterTileServer.get_provider_info(provider)
        api_key_required = "Yes" if info['requires_api_key'] else "No"
        print(f"  - {provider:22s} | Tile: {info['tile_size']}px | "
              f"API Key: {api_key_required:3s} | {info['description']}")
    print()


def example_markers_and_lines():
    """Fit the zoom to a route with start and end markers."""
    print("=" * 60)
    print("Example 2: Route with Markers (auto zoom)")
    print("=" * 60)

    smap = StaticMap(
        width=800,
        height=500,
        padding_x=20,
        padding_y=20,
        tile_request_header={'User-Agent': 'pystaticmap-example/0.1'},
        on_progress=lambda milestone, **payload: print(f"  {milestone} {payload}"),
    )
    route = [(13.3777, 52.5163), (13.3900, 52.5170), (13.4010, 52.5190), (13.4132, 52.5219)]
    smap.add_line(coords=route, color='#0000FFBB', width=5)
    smap.add_marker(coord=route[0], width=32, height=32)
    smap.add_marker(coord=route[-1], width=32, height=32)

    image = smap.render()
    output_file = os.path.join(OUTPUT_DIR, 'example_route.png')
    image.save(output_file)
    print(f"Zoom {smap.zoom}, saved map to: {output_file}")
    print()


def example_shapes():
    """Polygons, circles, custom figures and text at a fixed center."""
    print("=" * 60)
    print("Example 3: Shapes at a Fixed Center and Zoom")
    print("=" * 60)

    smap = StaticMap(width=600, height=400, provider='Carto.Positron')
    smap.add_polygon(
        coords=[(2.29, 48.85), (2.30, 48.86), (2.31, 48.85)],
        color='#FF0000BB', fill='#FF000033', width=2,
    )
    smap.add_circle(coord=(2.3522, 48.8566), radius=1500, fill='#00AA0044', color='#00AA00', width=2)
    smap.add_custom(
        coord=(2.3376, 48.8606), width=24, height=24,
        path='M 250 0 L 500 500 L 0 500 Z', fill='#AA00AA',
    )
    smap.add_text(coord=(2.3522, 48.8566), text='Paris', size=14, anchor='middle')

    image = smap.render(center=(2.33, 48.857), zoom=13)
    output_file = os.path.join(OUTPUT_DIR, 'example_shapes.jpg')
    image.save(output_file, quality=85)
    print(f"Saved map to: {output_file}")
    print(f"Attribution: {smap.server.get_license_info()}")
    print()


def main():
    """Run all examples."""
    logging.basicConfig(level=logging.INFO)

    print("\n" + "=" * 60)
    print("StaticMap Usage Examples")
    print("=" * 60 + "\n")

    example_list_providers()
    example_markers_and_lines()
    example_shapes()

    print("=" * 60)
    print("All examples completed!")
    print(f"Check {OUTPUT_DIR}/ directory for generated images")
    print("=" * 60)


if __name__ == '__main__':
    main()
