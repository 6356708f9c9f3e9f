import argparse
import logging
import time

from clrays.config import Config
from clrays.errors import ConfigError
from clrays.scenes import SCENES

#------------------------------------------------------------------------

def run(config: Config):
    # Importing the tracer initializes Taichi
    from clrays.render_server.taichi_tracer import TraceMode, TraceProcessor
    from clrays.render_server.taichi_tracer.display import write_image

    if config.scene not in SCENES:
        raise ConfigError(f"Unknown scene '{config.scene}'. Available: {', '.join(SCENES)}")
    scene = SCENES[config.scene]()

    processor = TraceProcessor(config.width, config.height, config.aa_samples, scene,
                               mode=TraceMode(config.mode))

    print(f"\nRendering '{config.title}': {config.frames} frame(s)")
    print(f"{'─' * 60}")
    render_start = time.time()
    pixels = None
    for frame in range(config.frames):
        pixels = processor.render()
        print(f"{frame + 1:4d}/{config.frames} │ {processor.frame_times[-1]*1000:6.1f}ms │ "
              f"Elapsed: {time.time() - render_start:5.1f}s")
    print(f"{'─' * 60}")

    write_image(config.output, pixels, config.width, config.height)
    print(f"\nImage saved to {config.output}")
    processor.print_stats()

#------------------------------------------------------------------------

def main(argv=None):
    parser = argparse.ArgumentParser(description="Render a scene with the Taichi tracer.")
    parser.add_argument('config', nargs='?', help="TOML config file (defaults are used when omitted)")
    parser.add_argument('-v', '--verbose', action='store_true', help="log debug output")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    config = Config.read(args.config) if args.config else Config()
    run(config)

#------------------------------------------------------------------------

if __name__ == "__main__":
    main()
