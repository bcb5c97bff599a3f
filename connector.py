# This connector syncs hourly visitor statistics from Plausible Analytics (https://plausible.io)
# through the Plausible Stats API v2 into a single table named "plausible_timeseries".
# Each page of results is requested with an offset, and the state tracks both the newest synced
# hour (lastDateTime) and the offset of the last consumed page of an unfinished window (lastOffset).
# See the Technical Reference documentation (https://fivetran.com/docs/connectors/connector-sdk/technical-reference#update)
# and the Best Practices documentation (https://fivetran.com/docs/connectors/connector-sdk/best-practices) for details
# Refer to Plausible's API for more information (https://plausible.io/docs/stats-api)

# For reading configuration from a JSON file
import json

# Import required classes from fivetran_connector_sdk
# For supporting Connector operations like Update() and Schema()
from fivetran_connector_sdk import Connector

# For enabling Logs in your connector code
from fivetran_connector_sdk import Logging as log

# For supporting Data operations like Upsert(), Update(), Delete() and checkpoint()
from fivetran_connector_sdk import Operations as op

# Import self written modules
from checkpoint import Checkpoint
from checkpoint_advancer import CheckpointAdvancer
from config import credentials_from_configuration, parse_configuration
from incremental_sync import run_sync_step
from plausible_client import PlausibleClient
from sync_planner import SyncPlanner
from timeseries import TABLE_NAME, table_schema


def validate_configuration(configuration: dict):
    """
    Validate the configuration dictionary to ensure it contains all required parameters.
    This function is called at the start of the update method to ensure that the connector has all necessary configuration values.
    Args:
        configuration: a dictionary that holds the configuration settings for the connector.
    Raises:
        ConfigurationError: if any required configuration parameter is missing or invalid.
    """
    credentials_from_configuration(configuration)
    parse_configuration(configuration)


def schema(configuration: dict):
    """
    Define the schema function which lets you configure the schema your connector delivers.
    See the technical reference documentation for more details on the schema function:
    https://fivetran.com/docs/connectors/connector-sdk/technical-reference#schema
    Args:
        configuration: a dictionary that holds the configuration settings for the connector.
    """
    return [table_schema()]


def update(configuration: dict, state: dict):
    """
    Define the update function, which is a required function, and is called by Fivetran during each sync.
    See the technical reference documentation for more details on the update function
    https://fivetran.com/docs/connectors/connector-sdk/technical-reference#update
    Args:
        configuration: A dictionary containing connection details
        state: A dictionary containing state information from previous runs
        The state dictionary is empty for the first sync or for any full re-sync
    """
    log.warning("Plausible Analytics: hourly timeseries sync")

    # Validate the configuration to ensure it contains all required values.
    validate_configuration(configuration=configuration)

    config = parse_configuration(configuration)
    client = PlausibleClient(credentials_from_configuration(configuration), config)
    planner = SyncPlanner(config)
    advancer = CheckpointAdvancer(config)

    try:
        checkpoint = Checkpoint.from_state(state)
        sync_timeseries(client, planner, advancer, checkpoint)
    except Exception as e:
        # In case of an exception, raise a runtime error
        raise RuntimeError(f"Failed to sync data: {str(e)}")


def sync_timeseries(client, planner, advancer, checkpoint):
    """
    Fetch pages until the current window is drained.
    Every page is followed by a checkpoint, so an interrupted sync resumes at the next page.
    Args:
        client: PlausibleClient used to query the Stats API
        planner: SyncPlanner computing the window and offset of each page
        advancer: CheckpointAdvancer computing the state after each page
        checkpoint: Checkpoint read from the state of the previous sync
    """
    pages = 0
    has_more = True
    while has_more:
        step = run_sync_step(client, planner, advancer, checkpoint)

        for row in step.rows():
            # The 'upsert' operation is used to insert or update data in the destination table.
            # Rows are keyed by their hour, so an hour delivered twice overwrites the earlier copy.
            op.upsert(table=TABLE_NAME, data=row)

        # Save the progress by checkpointing the state. This is important for ensuring that the sync process can resume
        # from the correct position in case of next sync or interruptions.
        # Learn more about how and where to checkpoint by reading our best practices documentation
        # (https://fivetran.com/docs/connectors/connector-sdk/best-practices#largedatasetrecommendation).
        op.checkpoint(step.checkpoint.to_state())

        checkpoint = step.checkpoint
        has_more = step.has_more
        pages += 1

    log.info(f"Sync finished after {pages} page(s), state: {checkpoint.to_state()}")


# Create the connector object using the schema and update functions
connector = Connector(update=update, schema=schema)

# Check if the script is being run as the main module.
# This is Python's standard entry method allowing your script to be run directly from the command line or IDE 'run' button.
# This is useful for debugging while you write your code. Note this method is not called by Fivetran when executing your connector in production.
# Please test using the Fivetran debug command prior to finalizing and deploying your connector.
if __name__ == "__main__":
    # Open the configuration.json file and load its contents
    with open("configuration.json", "r") as f:
        configuration = json.load(f)

    # Test the connector locally
    connector.debug(configuration=configuration)
